"""Global and per-project configuration."""

from __future__ import annotations

import json
import re
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Mapping

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_TIMESTAMP = re.compile(
    r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})$"
)


class ConfigError(Exception):
    """Raised when a configuration file cannot be read, written or parsed."""


def _format_time(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.astimezone()
    text = moment.isoformat()
    if text.endswith("+00:00"):
        text = text[: -len("+00:00")] + "Z"
    return text


def _parse_time(text: Any) -> datetime:
    if not isinstance(text, str):
        raise ConfigError(f"invalid timestamp: {text!r}")
    match = _TIMESTAMP.match(text.strip())
    if match is None:
        raise ConfigError(f"invalid timestamp: {text!r}")
    base, fraction, zone = match.groups()
    micros = (fraction or "")[:6].ljust(6, "0")
    if zone == "Z":
        tz = timezone.utc
    else:
        sign = -1 if zone[0] == "-" else 1
        hours, minutes = int(zone[1:3]), int(zone[4:6])
        tz = timezone(sign * timedelta(hours=hours, minutes=minutes))
    try:
        parsed = datetime.strptime(base, "%Y-%m-%dT%H:%M:%S")
    except ValueError as exc:
        raise ConfigError(f"invalid timestamp: {text!r}") from exc
    return parsed.replace(microsecond=int(micros), tzinfo=tz)


def _require_mapping(data: Any) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ConfigError("configuration must be a JSON object")
    return data


@dataclass
class Config:
    """Global settings of the assistant."""

    docs_dir: str = ""
    embedding_model: str = ""
    code_chat_model: str = ""
    documentation_model: str = ""
    ollama_host: str = ""
    hash_db_path: str = ""
    sqlite_db_path: str = ""
    web_port: str = ""
    git_bin_path: str = ""

    def to_dict(self) -> dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Config":
        data = _require_mapping(data)
        known = {f.name for f in fields(cls)}
        values: dict[str, str] = {}
        for key, value in data.items():
            if key not in known:
                continue
            if value is None:
                continue
            if not isinstance(value, str):
                raise ConfigError(f"field {key!r} must be a string")
            values[key] = value
        return cls(**values)


@dataclass
class ProjectConfig:
    """Settings and statistics of one indexed project."""

    project_name: str = ""
    project_path: str = ""
    exclude_folders: list[str] = field(default_factory=list)
    exclude_files: list[str] = field(default_factory=list)
    last_updated: datetime = ZERO_TIME
    total_indexed_files: int = 0
    total_failed_files: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_name": self.project_name,
            "project_path": self.project_path,
            "exclude_folders": list(self.exclude_folders),
            "exclude_files": list(self.exclude_files),
            "last_updated": _format_time(self.last_updated),
            "total_indexed_files": self.total_indexed_files,
            "total_failed_files": self.total_failed_files,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProjectConfig":
        data = _require_mapping(data)
        result = cls()
        for key in ("project_name", "project_path"):
            value = data.get(key)
            if value is None:
                continue
            if not isinstance(value, str):
                raise ConfigError(f"field {key!r} must be a string")
            setattr(result, key, value)
        for key in ("exclude_folders", "exclude_files"):
            value = data.get(key)
            if value is None:
                continue
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ConfigError(f"field {key!r} must be a list of strings")
            setattr(result, key, list(value))
        for key in ("total_indexed_files", "total_failed_files"):
            value = data.get(key)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"field {key!r} must be an integer")
            setattr(result, key, value)
        if data.get("last_updated") is not None:
            result.last_updated = _parse_time(data["last_updated"])
        return result


def default_config() -> Config:
    """Return the built-in default settings."""
    return Config(
        docs_dir="./docs",
        embedding_model="nomic-embed-text",
        code_chat_model="qwen2.5-coder:1.5b",
        documentation_model="llama3.2:1b",
        ollama_host="http://localhost:11434",
        hash_db_path="./db",
        sqlite_db_path="file_hashes.db",
        web_port="8080",
    )


def load_config(filename: str | Path) -> Config:
    """Load settings from a JSON file, creating it with defaults if missing."""
    path = Path(filename)
    if not path.exists():
        config = default_config()
        try:
            path.write_text(json.dumps(config.to_dict(), indent=2), encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"failed to write config file: {exc}") from exc
        print(f"Default config created at {path} — continuing with defaults")
        return config

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"failed to read config file: {exc}") from exc
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"failed to parse config file: {exc}") from exc
    if data is None:
        return Config()
    return Config.from_dict(data)