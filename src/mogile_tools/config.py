"""Configuration shared by the MogileFS admin tools.

Settings come from, in increasing precedence: a config file, `MOGILEFS_*` environment variables, and
command line flags. Config files use the MogileFS `key = value` format; `.json`, `.yaml` and `.yml` files are
read as mappings. `${VAR}` and `${VAR:default}` placeholders are substituted from the environment.
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, cast

import yaml

DEFAULT_CONFIG_FILES = (
    "~/.mogilefs.conf",
    "/etc/mogilefs/mogilefs.conf",
    "/etc/mogilefs/mogilefsd.conf",
)
DEFAULT_TRACKER_PORT = 7001

ENV_OVERRIDES = {
    "db_dsn": "MOGILEFS_DB_DSN",
    "db_user": "MOGILEFS_DB_USER",
    "db_pass": "MOGILEFS_DB_PASS",
    "trackers": "MOGILEFS_TRACKERS",
    "domain": "MOGILEFS_DOMAIN",
}


class ConfigError(ValueError):
    """Raised for missing or malformed configuration."""


@dataclass(frozen=True)
class ToolConfig:
    """Settings used by `mogstats` and `mogupload`."""

    db_dsn: Optional[str] = None
    db_user: Optional[str] = None
    db_pass: Optional[str] = None
    trackers: List[str] = field(default_factory=list)
    domain: Optional[str] = None
    storage_class: Optional[str] = None
    source: Optional[Path] = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], source: Optional[Path] = None) -> "ToolConfig":
        trackers = raw.get("trackers") or []
        return cls(
            db_dsn=_optional_str(raw.get("db_dsn")),
            db_user=_optional_str(raw.get("db_user")),
            db_pass=_optional_str(raw.get("db_pass")),
            trackers=parse_trackers(trackers),
            domain=_optional_str(raw.get("domain")),
            storage_class=_optional_str(raw.get("class")),
            source=source,
        )

    def with_env(self, environ: Optional[Mapping[str, str]] = None) -> "ToolConfig":
        """Return a copy with `MOGILEFS_*` environment overrides applied."""

        env = os.environ if environ is None else environ
        updates: Dict[str, Any] = {}
        for key, var in ENV_OVERRIDES.items():
            value = env.get(var)
            if value is None:
                continue
            updates[key] = parse_trackers(value) if key == "trackers" else value
        return replace(self, **updates) if updates else self

    def with_overrides(self, **overrides: Any) -> "ToolConfig":
        """Return a copy with every non-empty override applied."""

        updates = {key: value for key, value in overrides.items() if value not in (None, "", [])}
        if "trackers" in updates:
            updates["trackers"] = parse_trackers(updates["trackers"])
        return replace(self, **updates) if updates else self


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def parse_trackers(value: str | Sequence[str]) -> List[str]:
    """Normalise a comma separated tracker list (or list of them) to `host:port` entries."""

    items = value.split(",") if isinstance(value, str) else [str(item) for item in value]
    trackers: List[str] = []
    for item in items:
        item = item.strip()
        if not item:
            continue
        if ":" not in item:
            item = f"{item}:{DEFAULT_TRACKER_PORT}"
        trackers.append(item)
    return trackers


def find_config_file(explicit: Optional[str] = None, candidates: Sequence[str] = DEFAULT_CONFIG_FILES) -> Optional[Path]:
    """Return the config file to read, or None when no default file exists.

    An explicitly requested file must exist.
    """

    if explicit:
        path = Path(explicit).expanduser()
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        return path
    for candidate in candidates:
        path = Path(candidate).expanduser()
        if path.is_file():
            return path
    return None


def load_config_file(path: Path, environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    suffix = path.suffix.lower()
    raw: Any
    try:
        text = path.read_text()
        if suffix == ".json":
            raw = json.loads(text)
        elif suffix in {".yaml", ".yml"}:
            raw = yaml.safe_load(text)
        else:
            raw = _parse_key_values(text)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file must decode to a mapping: {path}")
    return cast(Dict[str, Any], substitute_env(raw, environ))


def load_tool_config(
    explicit: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    candidates: Sequence[str] = DEFAULT_CONFIG_FILES,
) -> ToolConfig:
    """Discover and read the config file, then apply environment overrides.

    Placeholders and overrides are both resolved against `environ` (default: `os.environ`).
    """

    path = find_config_file(explicit, candidates)
    config = ToolConfig.from_mapping(load_config_file(path, environ), source=path) if path else ToolConfig()
    return config.with_env(environ)


# '#' starts a comment only at the start of a line or after whitespace.
_COMMENT = re.compile(r"(?:^|\s)#")


def _parse_key_values(text: str) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for lineno, line in enumerate(text.splitlines(), start=1):
        line = _COMMENT.split(line, maxsplit=1)[0].strip()
        if not line:
            continue
        if "=" not in line:
            raise ConfigError(f"Invalid config line {lineno}: expected 'key = value'")
        key, value = line.split("=", 1)
        values[key.strip().lower()] = value.strip()
    return values


def substitute_env(value: Any, environ: Optional[Mapping[str, str]] = None) -> Any:
    env = os.environ if environ is None else environ
    if isinstance(value, dict):
        return {k: substitute_env(v, env) for k, v in value.items()}
    if isinstance(value, list):
        return [substitute_env(v, env) for v in value]
    if isinstance(value, str):
        return _replace_placeholders(value, env)
    return value


def _replace_placeholders(text: str, environ: Mapping[str, str]) -> str:
    result: List[str] = []
    idx = 0
    while idx < len(text):
        if not text.startswith("${", idx):
            result.append(text[idx])
            idx += 1
            continue

        end = text.find("}", idx)
        if end == -1:
            raise ConfigError(f"Unclosed placeholder in {text!r}")
        var, sep, default = text[idx + 2 : end].partition(":")
        if var in environ:
            result.append(environ[var])
        elif sep:
            result.append(default)
        else:
            raise ConfigError(f"Missing environment variable {var} for placeholder in config")
        idx = end + 1
    return "".join(result)
