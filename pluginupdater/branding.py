"""Centralized branding constants — single source of truth for version."""


class UpdaterBranding:
    """Library identity constants."""

    APP_NAME = "pluginupdater"
    VERSION = "1.0.0"

    # Conventional per-slug manifest endpoint used when no URL is given
    MANIFEST_BASE_URL = "https://www.inverseparadox.com/wp-json/ip-plugin/v1/manifest"

    @classmethod
    def user_agent(cls) -> str:
        return f"{cls.APP_NAME}/{cls.VERSION}"
