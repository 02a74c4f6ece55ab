import json
from unittest.mock import MagicMock, patch

import pytest

from pluginupdater.config.settings import UpdaterSettings
from pluginupdater.core.cache import MemoryCacheStore
from pluginupdater.core.update_checker import ManifestUpdateChecker

MANIFEST = {
    "name": "Example Plugin",
    "slug": "example-plugin",
    "version": "1.0.1",
    "tested": "6.4.2",
    "requires": "6.0",
    "requires_php": "7.4",
    "author": "Example Author",
    "author_profile": "https://example.com/author",
    "donate_link": "https://example.com/donate",
    "homepage": "https://example.com/plugin",
    "download_url": "https://example.com/example-plugin-1.0.1.zip",
    "last_updated": "2024-01-15 10:00:00",
    "sections": {
        "description": "Does example things.",
        "installation": "Upload and activate.",
        "changelog": "1.0.1: fixes",
    },
    "banners": {
        "low": "https://example.com/banner-772x250.png",
        "high": "https://example.com/banner-1544x500.png",
    },
}


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def make_response(body=MANIFEST, status=200):
    """Context-manager mock shaped like urlopen()'s return value."""
    if isinstance(body, (dict, list)):
        body = json.dumps(body)
    if isinstance(body, str):
        body = body.encode('utf-8')
    resp = MagicMock()
    resp.status = status
    resp.read.return_value = body
    cm = MagicMock()
    cm.__enter__.return_value = resp
    cm.__exit__.return_value = False
    return cm


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return MemoryCacheStore(clock=clock)


@pytest.fixture
def mock_urlopen():
    with patch('pluginupdater.core.update_checker.urlopen') as m:
        m.return_value = make_response()
        yield m


@pytest.fixture
def checker(cache):
    return ManifestUpdateChecker(
        'example-plugin/example-plugin.php', '1.0.0',
        'https://updates.example.com/manifest.json',
        cache=cache,
    )


@pytest.fixture
def uncached_checker(cache):
    return ManifestUpdateChecker(
        'example-plugin/example-plugin.php', '1.0.0',
        'https://updates.example.com/manifest.json',
        cache=cache,
        settings=UpdaterSettings.development(),
    )
