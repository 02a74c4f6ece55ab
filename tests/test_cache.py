import json
import threading
from unittest.mock import patch

import pytest

from pluginupdater.core.cache import CachedValue, FileCacheStore, MemoryCacheStore

from conftest import FakeClock


class TestMemoryCacheStore:

    def test_get_missing(self, cache):
        assert cache.get('nope') is None

    def test_set_get_records_timestamp(self, cache, clock):
        cache.set('k', 'blob', 60)
        assert cache.get('k') == CachedValue(blob='blob', stored_at=clock.now)

    def test_expiry(self, cache, clock):
        cache.set('k', 'blob', 60)
        clock.advance(60)
        assert cache.get('k') is None

    def test_set_replaces_entry(self, cache, clock):
        cache.set('k', 'old', 60)
        clock.advance(30)
        cache.set('k', 'new', 60)
        clock.advance(45)
        assert cache.get('k').blob == 'new'

    def test_delete_is_idempotent(self, cache):
        cache.set('k', 'blob', 60)
        cache.delete('k')
        cache.delete('k')
        assert cache.get('k') is None


class TestFileCacheStore:

    def test_roundtrip_and_persistence(self, tmp_path):
        clock = FakeClock()
        FileCacheStore(str(tmp_path), clock=clock).set('my-plugin_updater', '{"a": 1}', 60)
        value = FileCacheStore(str(tmp_path), clock=clock).get('my-plugin_updater')
        assert value == CachedValue(blob='{"a": 1}', stored_at=clock.now)

    def test_expired_file_removed(self, tmp_path):
        clock = FakeClock()
        store = FileCacheStore(str(tmp_path), clock=clock)
        store.set('k', 'blob', 10)
        clock.advance(10)
        assert store.get('k') is None
        assert list(tmp_path.iterdir()) == []

    def test_unreadable_file_is_a_miss(self, tmp_path):
        (tmp_path / 'k.json').write_text('garbage', encoding='utf-8')
        assert FileCacheStore(str(tmp_path)).get('k') is None

    def test_key_sanitized(self, tmp_path):
        store = FileCacheStore(str(tmp_path))
        store.set('../evil key', 'blob', 60)
        assert [p.name for p in tmp_path.iterdir()] == ['.._evil_key.json']
        assert store.get('../evil key').blob == 'blob'

    def test_non_string_blob_is_a_miss(self, tmp_path):
        (tmp_path / 'k.json').write_text(
            json.dumps({'blob': 5, 'stored_at': 0, 'expires_at': 9e12}), encoding='utf-8')
        assert FileCacheStore(str(tmp_path)).get('k') is None

    def test_set_leaves_no_temp_files(self, tmp_path):
        store = FileCacheStore(str(tmp_path))
        store.set('k', 'one', 60)
        store.set('k', 'two', 60)
        assert [p.name for p in tmp_path.iterdir()] == ['k.json']

    def test_failed_write_removes_temp_file(self, tmp_path):
        store = FileCacheStore(str(tmp_path))
        with patch('pluginupdater.core.cache.json.dump', side_effect=OSError('disk full')):
            with pytest.raises(OSError):
                store.set('k', 'blob', 60)
        assert list(tmp_path.iterdir()) == []

    def test_concurrent_writers_leave_valid_entry(self, tmp_path):
        store = FileCacheStore(str(tmp_path))
        blobs = [json.dumps({'version': f'1.0.{i}'}) * 50 for i in range(8)]
        threads = [threading.Thread(target=store.set, args=('k', b, 60)) for b in blobs]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert store.get('k').blob in blobs
        assert [p.name for p in tmp_path.iterdir()] == ['k.json']

    def test_delete_missing(self, tmp_path):
        FileCacheStore(str(tmp_path / 'absent')).delete('k')

    def test_checker_with_file_store(self, tmp_path, mock_urlopen):
        from pluginupdater.core.update_checker import ManifestUpdateChecker
        store = FileCacheStore(str(tmp_path))
        first = ManifestUpdateChecker('example-plugin/main.php', '1.0.0', 'https://u/m', cache=store)
        first.fetch_manifest()
        second = ManifestUpdateChecker('example-plugin/main.php', '1.0.0', 'https://u/m', cache=store)
        assert second.fetch_manifest().version == '1.0.1'
        assert mock_urlopen.call_count == 1

    def test_checker_refetches_over_non_string_blob(self, tmp_path, mock_urlopen):
        from pluginupdater.core.update_checker import ManifestUpdateChecker
        (tmp_path / 'example-plugin_updater.json').write_text(
            json.dumps({'blob': 5, 'stored_at': 0, 'expires_at': 9e12}), encoding='utf-8')
        checker = ManifestUpdateChecker('example-plugin/main.php', '1.0.0', 'https://u/m',
                                         cache=FileCacheStore(str(tmp_path)))
        assert checker.fetch_manifest().version == '1.0.1'
        assert mock_urlopen.call_count == 1
