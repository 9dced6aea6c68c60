import time
from dataclasses import field, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import ConfigDict, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel
from pydantic.dataclasses import dataclass as pydantic_dataclass

from chatsync.consts import RETIRED_PROXY_URL, SETTINGS_FILE_NAME, STORAGE_KEY, SYNC_SETTINGS_VERSION
from chatsync.exceptions import ConfigurationError
from chatsync.fs import atomic_write_text, read_bytes_if_exists

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProviderType(str, Enum):
    WEBDAV = "webdav"
    UPSTASH = "upstash"


class ForceDirection(str, Enum):
    REMOTE = "remote"
    LOCAL = "local"


@pydantic_dataclass(config=_CAMEL)
class WebDavConfig:
    endpoint: str = ""
    username: str = ""
    password: str = ""


@pydantic_dataclass(config=_CAMEL)
class UpstashConfig:
    force_sync: bool = False
    endpoint: str = ""
    username: str = STORAGE_KEY
    api_key: str = ""


@pydantic_dataclass(config=_CAMEL)
class SyncSettings:
    provider: ProviderType = ProviderType.WEBDAV
    use_proxy: bool = False
    proxy_url: str = ""
    force_direction: ForceDirection = ForceDirection.REMOTE
    webdav: WebDavConfig = field(default_factory=WebDavConfig)
    upstash: UpstashConfig = field(default_factory=UpstashConfig)
    last_sync_time: int = 0
    last_provider: str = ""
    version: float = SYNC_SETTINGS_VERSION

    @property
    def provider_config(self) -> WebDavConfig | UpstashConfig:
        match self.provider:
            case ProviderType.WEBDAV:
                return self.webdav
            case ProviderType.UPSTASH:
                return self.upstash

    @property
    def force_sync(self) -> bool:
        return self.upstash.force_sync

    @property
    def effective_proxy_url(self) -> str | None:
        return self.proxy_url if self.use_proxy and self.proxy_url else None

    def is_configured(self) -> bool:
        """True when every endpoint/credential string of the selected provider is filled in."""
        config = self.provider_config
        values = [getattr(config, f.name) for f in fields(config)]
        return all(len(v) > 0 for v in values if isinstance(v, str))


SyncSettingsAdapter = TypeAdapter(SyncSettings)


def migrate_settings(raw: dict[str, Any]) -> dict[str, Any]:
    """
    Applies the one-time settings migrations for documents older than the current version.

    Each step only fires for versions below its own number, so re-running is a no-op.
    """
    version = raw.get("version", 0)
    if not isinstance(version, int | float):
        raise ConfigurationError(f"Invalid sync settings version: {version!r}")

    if version < 1.1:
        match raw.setdefault("upstash", {}):
            case dict() as upstash if not upstash.get("username"):
                upstash["username"] = STORAGE_KEY
            case _:
                pass

    if version < 1.2:
        if raw.get("proxyUrl") == RETIRED_PROXY_URL:
            raw["proxyUrl"] = ""

    raw["version"] = SYNC_SETTINGS_VERSION
    return raw


class SettingsStore:
    """Persisted sync settings plus the sync bookkeeping fields."""

    path: Path
    settings: SyncSettings

    def __init__(self, path: Path, settings: SyncSettings | None = None) -> None:
        self.path = path
        self.settings = settings or SyncSettings()

    @classmethod
    def open(cls, data_dir: Path) -> "SettingsStore":
        path = data_dir / SETTINGS_FILE_NAME
        try:
            raw_text = read_bytes_if_exists(path)
        except OSError as e:
            raise ConfigurationError(f"Cannot read sync settings {path}: {e}") from e
        if raw_text is None:
            return cls(path)

        try:
            raw = TypeAdapter(dict[str, Any]).validate_json(raw_text)
            settings = SyncSettingsAdapter.validate_python(migrate_settings(raw))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid sync settings in {path}: {e}") from e
        return cls(path, settings)

    def save(self) -> None:
        json_text = SyncSettingsAdapter.dump_json(self.settings, by_alias=True, indent=2)
        atomic_write_text(self.path, json_text)

    def update(self, **changes: Any) -> SyncSettings:
        self.settings = replace(self.settings, **changes)
        self.save()
        return self.settings

    def mark_sync_time(self) -> None:
        self.update(
            last_sync_time=int(time.time() * 1000),
            last_provider=self.settings.provider.value,
        )
