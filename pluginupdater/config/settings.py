"""Updater settings — explicit construction-time configuration."""

import json
import logging
import os
from dataclasses import dataclass, asdict

from pluginupdater.branding import UpdaterBranding

logger = logging.getLogger(__name__)

DEV_MODE_ENV = 'PLUGINUPDATER_DEV_MODE'
DAY_IN_SECONDS = 24 * 60 * 60


@dataclass
class UpdaterSettings:
    """Behavior switches for a ManifestUpdateChecker."""
    # Network
    verify_tls: bool = True
    timeout: float = 10                 # seconds
    manifest_base_url: str = UpdaterBranding.MANIFEST_BASE_URL

    # Cache
    caching_enabled: bool = True
    cache_ttl: int = DAY_IN_SECONDS

    # Use "<=" instead of "<" for the requires_php bound
    inclusive_runtime_bound: bool = False

    def __post_init__(self):
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout!r}")
        if self.cache_ttl <= 0:
            raise ValueError(f"cache_ttl must be positive, got {self.cache_ttl!r}")
        self.manifest_base_url = self.manifest_base_url.rstrip('/')

    @staticmethod
    def development() -> 'UpdaterSettings':
        """Settings for local development: no TLS checks, no caching."""
        return UpdaterSettings(verify_tls=False, caching_enabled=False)

    @staticmethod
    def from_env(environ: dict | None = None) -> 'UpdaterSettings':
        """Defaults, or development settings when the dev-mode flag is set."""
        if environ is None:
            environ = os.environ
        if DEV_MODE_ENV in environ:
            logger.info("%s set, TLS verification and caching disabled", DEV_MODE_ENV)
            return UpdaterSettings.development()
        return UpdaterSettings()

    @staticmethod
    def load(path: str) -> 'UpdaterSettings':
        """Load settings from JSON. Returns defaults if file doesn't exist."""
        if not os.path.isfile(path):
            logger.info("No settings file at %s, using defaults", path)
            return UpdaterSettings()

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            settings = UpdaterSettings(**{k: v for k, v in data.items()
                                          if k in UpdaterSettings.__dataclass_fields__})
            logger.info("Loaded settings from %s", path)
            return settings
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning("Failed to load settings: %s", e)
            return UpdaterSettings()

    def save(self, path: str):
        """Save settings to JSON."""
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        try:
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(asdict(self), f, indent=2)
            logger.info("Saved settings to %s", path)
        except OSError as e:
            logger.warning("Failed to save settings: %s", e)
