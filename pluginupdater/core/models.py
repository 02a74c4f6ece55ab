"""Update system data models."""

from dataclasses import dataclass, field


def _text(data: dict, key: str) -> str:
    value = data.get(key)
    return "" if value is None else str(value)


@dataclass(frozen=True)
class ManifestSections:
    """Long-form text shown on the plugin information screen."""

    description: str = ""
    installation: str = ""
    changelog: str = ""

    def as_dict(self) -> dict:
        return {
            'description': self.description,
            'installation': self.installation,
            'changelog': self.changelog,
        }


@dataclass(frozen=True)
class ManifestBanners:
    low: str = ""
    high: str = ""

    def as_dict(self) -> dict:
        return {'low': self.low, 'high': self.high}


@dataclass(frozen=True)
class Manifest:
    """Remote JSON document describing the latest release of a plugin."""

    name: str = ""
    slug: str = ""
    version: str = ""
    tested: str = ""
    requires: str = ""
    requires_php: str = ""
    author: str = ""
    author_profile: str = ""
    donate_link: str = ""
    homepage: str = ""
    download_url: str = ""
    last_updated: str = ""
    sections: ManifestSections = field(default_factory=ManifestSections)
    banners: ManifestBanners | None = None

    @classmethod
    def from_dict(cls, data: dict) -> 'Manifest':
        """Build a manifest from decoded JSON; absent fields become ''."""
        if not isinstance(data, dict):
            raise TypeError(f"manifest must be a JSON object, got {type(data).__name__}")

        sections = data.get('sections')
        if not isinstance(sections, dict):
            sections = {}

        banners = data.get('banners')
        return cls(
            name=_text(data, 'name'),
            slug=_text(data, 'slug'),
            version=_text(data, 'version'),
            tested=_text(data, 'tested'),
            requires=_text(data, 'requires'),
            requires_php=_text(data, 'requires_php'),
            author=_text(data, 'author'),
            author_profile=_text(data, 'author_profile'),
            donate_link=_text(data, 'donate_link'),
            homepage=_text(data, 'homepage'),
            download_url=_text(data, 'download_url'),
            last_updated=_text(data, 'last_updated'),
            sections=ManifestSections(
                description=_text(sections, 'description'),
                installation=_text(sections, 'installation'),
                changelog=_text(sections, 'changelog'),
            ),
            banners=(ManifestBanners(low=_text(banners, 'low'), high=_text(banners, 'high'))
                     if isinstance(banners, dict) and banners else None),
        )


@dataclass(frozen=True)
class UpdateDecision:
    """Outcome of comparing the installed version against the manifest.

    Truthy only when an update is available.
    """

    available: bool
    new_version: str = ""
    tested: str = ""
    package_url: str = ""

    @classmethod
    def no_update(cls) -> 'UpdateDecision':
        return cls(available=False)

    @classmethod
    def update_available(cls, new_version: str, package_url: str,
                         tested: str = "") -> 'UpdateDecision':
        return cls(available=True, new_version=new_version,
                   tested=tested, package_url=package_url)

    def __bool__(self) -> bool:
        return self.available


@dataclass
class PluginInfo:
    """Plugin information handed back to the host's info screen."""

    name: str
    slug: str
    version: str
    tested: str
    requires: str
    requires_php: str
    author: str
    author_profile: str
    donate_link: str
    homepage: str
    download_link: str
    trunk: str
    last_updated: str
    sections: dict
    banners: dict | None = None

    @classmethod
    def from_manifest(cls, manifest: Manifest) -> 'PluginInfo':
        return cls(
            name=manifest.name,
            slug=manifest.slug,
            version=manifest.version,
            tested=manifest.tested,
            requires=manifest.requires,
            requires_php=manifest.requires_php,
            author=manifest.author,
            author_profile=manifest.author_profile,
            donate_link=manifest.donate_link,
            homepage=manifest.homepage,
            download_link=manifest.download_url,
            trunk=manifest.download_url,
            last_updated=manifest.last_updated,
            sections=manifest.sections.as_dict(),
            banners=manifest.banners.as_dict() if manifest.banners else None,
        )


@dataclass
class UpdateEntry:
    """Per-plugin entry attached to the host's update transient."""

    slug: str
    plugin: str             # Plugin basename, e.g. "my-plugin/my-plugin.php"
    new_version: str
    tested: str
    package: str            # Download URL of the new release


@dataclass
class UpdateTransient:
    """Host update-check state: installed versions and pending updates."""

    checked: dict[str, str] = field(default_factory=dict)
    response: dict[str, UpdateEntry] = field(default_factory=dict)
