"""User configuration stored in ~/.branchvault/config.toml."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import toml  # type: ignore[import-untyped]

from branchvault.backup.errors import ConfigurationError

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_INTERVAL_MINUTES = 10
DEFAULT_BATCH_SIZE = 50
SECTION = "backup"


def branchvault_dir() -> Path:
    return Path.home() / ".branchvault"


@dataclass
class BackupSettings:
    destination_url: str | None = None
    interval_minutes: int = DEFAULT_INTERVAL_MINUTES
    notifications: bool = True
    auto_start: bool = False
    batch_size: int = DEFAULT_BATCH_SIZE
    exclude_paths: list[str] = field(default_factory=list)
    api_url: str = DEFAULT_API_URL

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "BackupSettings":
        if not isinstance(data, dict):
            return cls()
        settings = cls()

        url = data.get("destination_url")
        if isinstance(url, str) and url.strip():
            settings.destination_url = url.strip()

        interval = data.get("interval_minutes")
        if isinstance(interval, int) and not isinstance(interval, bool):
            settings.interval_minutes = interval

        for key in ("notifications", "auto_start"):
            value = data.get(key)
            if isinstance(value, bool):
                setattr(settings, key, value)

        batch_size = data.get("batch_size")
        if isinstance(batch_size, int) and not isinstance(batch_size, bool) and batch_size > 0:
            settings.batch_size = batch_size

        excludes = data.get("exclude_paths")
        if isinstance(excludes, list):
            settings.exclude_paths = [str(item) for item in excludes if str(item).strip()]

        api_url = data.get("api_url")
        if isinstance(api_url, str) and api_url.strip():
            settings.api_url = api_url.strip().rstrip("/")
        return settings

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if data["destination_url"] is None:
            del data["destination_url"]
        return data


class ConfigStore:
    """Reads and writes the ``[backup]`` table of the config file."""

    def __init__(self, config_file: Path | None = None) -> None:
        self.config_file = config_file or branchvault_dir() / "config.toml"

    def _read(self) -> dict[str, Any]:
        if not self.config_file.exists():
            return {}
        try:
            return toml.load(self.config_file)
        except (toml.TomlDecodeError, OSError) as exc:
            raise ConfigurationError(f"Invalid configuration file {self.config_file}: {exc}") from exc

    def load(self) -> BackupSettings:
        return BackupSettings.from_dict(self._read().get(SECTION))

    def save(self, settings: BackupSettings) -> None:
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        config = self._read()
        config[SECTION] = settings.to_dict()
        with open(self.config_file, "w", encoding="utf-8") as handle:
            toml.dump(config, handle)

    def update(self, **changes: Any) -> BackupSettings:
        settings = self.load()
        for key, value in changes.items():
            if not hasattr(settings, key):
                raise ConfigurationError(f"Unknown setting: {key}")
            setattr(settings, key, value)
        self.save(settings)
        return settings


__all__ = ["BackupSettings", "ConfigStore", "DEFAULT_API_URL", "branchvault_dir"]
