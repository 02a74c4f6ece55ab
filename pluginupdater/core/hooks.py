"""Host-facing callbacks over a ManifestUpdateChecker.

The host owns hook registration and calls these methods from its own
plugin-information, update-check, and post-upgrade events.
"""

import logging
import platform
from collections.abc import Mapping, MutableMapping

from pluginupdater.core.models import PluginInfo, UpdateEntry
from pluginupdater.core.update_checker import ManifestUpdateChecker

logger = logging.getLogger(__name__)

PLUGIN_INFORMATION_ACTION = "plugin_information"


def _lookup(obj, key: str):
    """Read `key` from a mapping or an attribute-style object."""
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(key)
    return getattr(obj, key, None)


class UpdaterHooks:
    """Plugin-info, update-transient, and post-upgrade callbacks."""

    def __init__(self, checker: ManifestUpdateChecker, host_platform_version: str,
                 host_runtime_version: str | None = None):
        self.checker = checker
        self.host_platform_version = host_platform_version
        self.host_runtime_version = host_runtime_version or platform.python_version()

    def plugin_info(self, response, action: str, args):
        """Return a PluginInfo for this plugin, or `response` untouched."""
        if action != PLUGIN_INFORMATION_ACTION:
            return response

        slug = _lookup(args, 'slug')
        if not slug or slug != self.checker.plugin_slug:
            return response

        manifest = self.checker.fetch_manifest()
        if manifest is None:
            return response

        return PluginInfo.from_manifest(manifest)

    def filter_update_transient(self, transient):
        """Attach an UpdateEntry under this plugin's basename when newer."""
        if not _lookup(transient, 'checked'):
            return transient

        decision = self.checker.is_update_available(
            self.checker.version,
            self.host_platform_version,
            self.host_runtime_version,
        )
        if not decision:
            return transient

        entry = UpdateEntry(
            slug=self.checker.plugin_slug,
            plugin=self.checker.plugin_basename,
            new_version=decision.new_version,
            tested=decision.tested,
            package=decision.package_url,
        )
        if isinstance(transient, MutableMapping):
            transient.setdefault('response', {})[entry.plugin] = entry
        else:
            if getattr(transient, 'response', None) is None:
                transient.response = {}
            transient.response[entry.plugin] = entry
        return transient

    def on_upgrade_complete(self, upgrader, options):
        """Purge the cached manifest after any plugin update completes."""
        if not self.checker.cache_allowed:
            return
        if _lookup(options, 'action') == 'update' and _lookup(options, 'type') == 'plugin':
            logger.debug("Plugin upgrade finished, purging %s", self.checker.cache_key)
            self.checker.invalidate_cache()
