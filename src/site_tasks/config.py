"""YAML settings for the site-tasks CLI."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import yaml

from .models import ConfigError
from .planner import DEFAULT_RECURRING_PHASES, VALID_FOCUS

CONFIG_FILENAME = "site-tasks.yaml"
SUPPORTED_SETTINGS_KEYS = {"catalog", "recurring_phases", "focus"}

Warn = Callable[[str], None] | None


@dataclass(frozen=True, slots=True)
class Settings:
    catalog: Path | None = None
    recurring_phases: tuple[str, ...] = DEFAULT_RECURRING_PHASES
    focus: str | None = None


def default_config() -> dict[str, Any]:
    return {
        "settings": {
            "recurring_phases": list(DEFAULT_RECURRING_PHASES),
        }
    }


def write_default_config_if_missing(path: Path) -> bool:
    if path.exists():
        return False
    payload = yaml.safe_dump(default_config(), sort_keys=False, default_flow_style=False)
    path.write_text(payload, encoding="utf-8")
    return True


def discover_config(start: Path) -> Path | None:
    start = start.resolve()
    for candidate in [start, *start.parents]:
        path = candidate / CONFIG_FILENAME
        if path.is_file():
            return path
    return None


def read_config(path: Path, warn: Warn = None) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError):
        if warn is not None:
            warn(f"Unable to parse config at {path}. Falling back to defaults.")
        return {}
    if not isinstance(payload, dict):
        if warn is not None:
            warn(f"Invalid config format at {path}. Falling back to defaults.")
        return {}
    return payload


def _resolve_catalog(value: Any, path: Path, warn: Warn) -> Path | None:
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        if warn is not None:
            warn(f"Invalid settings.catalog in {path}. Using the bundled catalog.")
        return None
    catalog = Path(value).expanduser()
    if not catalog.is_absolute():
        catalog = path.parent / catalog
    return catalog


def _resolve_phases(value: Any, path: Path, warn: Warn) -> tuple[str, ...]:
    if value is None:
        return DEFAULT_RECURRING_PHASES
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not value or not all(
        isinstance(item, str) and item.strip() for item in value
    ):
        if warn is not None:
            warn(
                f"Invalid settings.recurring_phases in {path}. "
                f"Using default '{', '.join(DEFAULT_RECURRING_PHASES)}'."
            )
        return DEFAULT_RECURRING_PHASES
    return tuple(item.strip() for item in value)


def _resolve_focus(value: Any, path: Path, warn: Warn) -> str | None:
    if value is None:
        return None
    if value not in VALID_FOCUS:
        if warn is not None:
            warn(f"Invalid settings.focus in {path}. Ignoring.")
        return None
    return value


def resolve_settings(path: Path | None, warn: Warn = None) -> Settings:
    if path is None:
        return Settings()

    data = read_config(path, warn=warn)
    for key in data.keys():
        if key != "settings" and warn is not None:
            warn(f"Unsupported config key '{key}' in {path}. Ignoring.")

    settings = data.get("settings", {})
    if not isinstance(settings, dict):
        if warn is not None:
            warn(f"Invalid settings section in {path}. Using defaults.")
        return Settings()

    for key in settings.keys():
        if key not in SUPPORTED_SETTINGS_KEYS and warn is not None:
            warn(f"Unsupported settings key '{key}' in {path}. Ignoring.")

    return Settings(
        catalog=_resolve_catalog(settings.get("catalog"), path, warn),
        recurring_phases=_resolve_phases(settings.get("recurring_phases"), path, warn),
        focus=_resolve_focus(settings.get("focus"), path, warn),
    )


def load_settings(explicit: Path | None, start: Path, warn: Warn = None) -> Settings:
    """Settings from an explicit config path, else the nearest site-tasks.yaml."""
    if explicit is not None:
        path = explicit.expanduser().resolve()
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
        return resolve_settings(path, warn=warn)
    return resolve_settings(discover_config(start), warn=warn)
