"""Remote manifest update checker.

Architecture:
  ManifestUpdateChecker — fetches the plugin manifest, caches it, and decides
                          whether the installed version should be updated
  UpdaterHooks          — host-facing callbacks (see pluginupdater.core.hooks)

Every failure while fetching degrades to "no manifest": nothing is raised to
the caller and nothing is cached, so the next check retries immediately.
"""

import json
import logging
import posixpath
import re
import ssl
from http.client import HTTPException
from urllib.error import HTTPError, URLError
from urllib.parse import urlsplit
from urllib.request import Request, urlopen

from packaging.version import Version, InvalidVersion

from pluginupdater.branding import UpdaterBranding
from pluginupdater.config.settings import UpdaterSettings
from pluginupdater.core.cache import CacheStore, MemoryCacheStore
from pluginupdater.core.models import Manifest, UpdateDecision

logger = logging.getLogger(__name__)

# Leading numeric release of strings like "8.1.2-1ubuntu2.14"
_RELEASE_RE = re.compile(r'\d+(?:\.\d+)*')


class ManifestError(Exception):
    """Manifest could not be obtained."""


class TransportError(ManifestError):
    """Network failure or timeout."""


class BadResponse(ManifestError):
    """Non-200 status or empty body."""


class ParseError(ManifestError):
    """Body is not a JSON object."""


def parse_version(value: str) -> Version | None:
    """Parse a version string, falling back to its leading numeric release."""
    value = (value or "").strip().lstrip('vV')
    if not value:
        return None
    try:
        return Version(value)
    except InvalidVersion:
        match = _RELEASE_RE.match(value)
        if match:
            return Version(match.group(0))
        return None


def plugin_slug_from_basename(plugin_basename: str) -> str:
    """'my-plugin/my-plugin.php' -> 'my-plugin'; 'hello.php' -> 'hello'."""
    directory = posixpath.dirname(plugin_basename)
    if directory:
        return directory
    stem, _ext = posixpath.splitext(plugin_basename)
    return stem


def parse_manifest(body: str) -> Manifest:
    try:
        data = json.loads(body)
    except (ValueError, TypeError) as e:
        raise ParseError(f"Invalid JSON: {e}") from e
    try:
        return Manifest.from_dict(data)
    except TypeError as e:
        raise ParseError(str(e)) from e


class ManifestUpdateChecker:
    """Checks a remote JSON manifest for a newer plugin version.

    All methods are synchronous; a network call blocks for at most
    settings.timeout seconds.
    """

    def __init__(self, plugin_basename: str, version: str, manifest_url: str = "",
                 *, cache: CacheStore | None = None,
                 settings: UpdaterSettings | None = None):
        if not plugin_basename:
            raise ValueError("plugin_basename is required")

        self.settings = settings or UpdaterSettings()
        self.plugin_basename = plugin_basename
        self.plugin_slug = plugin_slug_from_basename(plugin_basename)
        self.version = version
        self.cache_key = f"{self.plugin_slug}_updater"
        self.cache_allowed = self.settings.caching_enabled
        self.manifest_url = manifest_url or (
            f"{self.settings.manifest_base_url}/{self.plugin_slug}"
        )
        if urlsplit(self.manifest_url).scheme not in ('http', 'https'):
            raise ValueError(f"manifest_url must be an http(s) URL, got {self.manifest_url!r}")
        self.cache = cache if cache is not None else MemoryCacheStore()

    # ── Fetch ────────────────────────────────────────────────────────

    def fetch_manifest(self) -> Manifest | None:
        """Return the manifest, from cache when possible. None on failure."""
        if self.cache_allowed:
            cached = self.cache.get(self.cache_key)
            if cached is not None:
                try:
                    manifest = parse_manifest(cached.blob)
                    logger.debug("Using cached manifest for %s", self.plugin_slug)
                    return manifest
                except ParseError as e:
                    logger.warning("Discarding cached manifest for %s: %s",
                                   self.plugin_slug, e)
                    self.cache.delete(self.cache_key)

        try:
            body = self._download()
            manifest = parse_manifest(body)
        except ManifestError as e:
            logger.warning("Manifest unavailable for %s (%s): %s",
                           self.plugin_slug, type(e).__name__, e)
            return None

        if self.cache_allowed:
            try:
                self.cache.set(self.cache_key, body, self.settings.cache_ttl)
            except OSError as e:
                logger.warning("Failed to cache manifest for %s: %s", self.plugin_slug, e)

        logger.info("Fetched manifest for %s: version %s",
                    self.plugin_slug, manifest.version or "?")
        return manifest

    def _ssl_context(self) -> ssl.SSLContext:
        context = ssl.create_default_context()
        if not self.settings.verify_tls:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def _download(self) -> str:
        try:
            req = Request(self.manifest_url, headers={
                'User-Agent': UpdaterBranding.user_agent(),
                'Accept': 'application/json',
            })
            with urlopen(req, timeout=self.settings.timeout,
                         context=self._ssl_context()) as resp:
                status = resp.status
                raw = resp.read()
        except HTTPError as e:
            raise BadResponse(f"HTTP {e.code} from {self.manifest_url}") from e
        except (URLError, OSError, HTTPException, ValueError) as e:
            raise TransportError(f"{self.manifest_url}: {e}") from e

        if status != 200:
            raise BadResponse(f"HTTP {status} from {self.manifest_url}")

        try:
            body = raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise ParseError(f"Body is not UTF-8: {e}") from e

        if not body.strip():
            raise BadResponse(f"Empty body from {self.manifest_url}")
        return body

    # ── Decide ───────────────────────────────────────────────────────

    def is_update_available(self, current_version: str, host_platform_version: str,
                            host_runtime_version: str) -> UpdateDecision:
        """Compare the installed version and host versions against the manifest.

        An update is reported only if the manifest version is newer, the
        platform satisfies `requires` (inclusive), and the runtime satisfies
        `requires_php` (strict unless settings.inclusive_runtime_bound).
        """
        manifest = self.fetch_manifest()
        if manifest is None:
            return UpdateDecision.no_update()

        current = parse_version(current_version)
        latest = parse_version(manifest.version)
        if current is None or latest is None:
            logger.warning("Cannot compare versions %r and %r for %s",
                           current_version, manifest.version, self.plugin_slug)
            return UpdateDecision.no_update()
        if not current < latest:
            return UpdateDecision.no_update()

        if not self._bound_satisfied('requires', manifest.requires,
                                     host_platform_version, inclusive=True):
            return UpdateDecision.no_update()
        if not self._bound_satisfied('requires_php', manifest.requires_php,
                                     host_runtime_version,
                                     inclusive=self.settings.inclusive_runtime_bound):
            return UpdateDecision.no_update()

        logger.info("Update available for %s: %s -> %s",
                    self.plugin_slug, current_version, manifest.version)
        return UpdateDecision.update_available(
            new_version=manifest.version,
            package_url=manifest.download_url,
            tested=manifest.tested,
        )

    def _bound_satisfied(self, field_name: str, required: str, host: str,
                         inclusive: bool) -> bool:
        if not required:
            return True
        required_ver = parse_version(required)
        host_ver = parse_version(host)
        if required_ver is None or host_ver is None:
            logger.warning("Cannot compare %s %r with host %r for %s",
                           field_name, required, host, self.plugin_slug)
            return False
        if inclusive:
            return required_ver <= host_ver
        return required_ver < host_ver

    # ── Cleanup ──────────────────────────────────────────────────────

    def invalidate_cache(self):
        """Drop the cached manifest so the next fetch hits the network."""
        self.cache.delete(self.cache_key)
        logger.info("Cleared cached manifest for %s", self.plugin_slug)
