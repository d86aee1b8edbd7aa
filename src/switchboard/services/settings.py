"""Settings dataclasses and persistence helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Callable, Dict, Mapping

from ..workspace.grouping import DEFAULT_PROJECT_PALETTE
from ..workspace.history import DEFAULT_HISTORY_CAPACITY

__all__ = ["Settings", "SettingsStore"]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".switchboard"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
DEFAULT_WIRE_TIMEOUT = 30.0
DEFAULT_AUTOSAVE_DELAY = 0.5


def _env_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


def _env_int(value: str) -> int:
    return int(value, 10)


# Environment variable -> (settings field, parser)
_ENV_OVERRIDES: Mapping[str, tuple[str, Callable[[str], Any]]] = {
    "SWITCHBOARD_LAST_PROJECT": ("last_project_path", str),
    "SWITCHBOARD_DEBUG_LOGGING": ("debug_logging", _env_bool),
    "SWITCHBOARD_SESSION_WIRE_TIMEOUT": ("session_wire_timeout", float),
    "SWITCHBOARD_AUTOSAVE_DELAY": ("autosave_delay", float),
    "SWITCHBOARD_CLOSED_TAB_CAPACITY": ("closed_tab_capacity", _env_int),
}


@dataclass(slots=True)
class Settings:
    """User-configurable settings persisted between sessions."""

    open_tabs: list[dict[str, Any]] | None = None  # None = never saved, [] = explicitly empty
    active_tab_id: str | None = None
    last_project_path: str | None = None
    closed_tab_capacity: int = DEFAULT_HISTORY_CAPACITY
    session_wire_timeout: float = DEFAULT_WIRE_TIMEOUT
    autosave_delay: float = DEFAULT_AUTOSAVE_DELAY
    project_palette: list[str] = field(default_factory=lambda: list(DEFAULT_PROJECT_PALETTE))
    debug_logging: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)


_FIELD_NAMES = frozenset(item.name for item in fields(Settings))
_FLOAT_DEFAULTS = {"session_wire_timeout": DEFAULT_WIRE_TIMEOUT, "autosave_delay": DEFAULT_AUTOSAVE_DELAY}


class SettingsStore:
    """Persistence adapter for :class:`Settings`."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        """Return the resolved path backing this store."""

        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Load settings from disk, applying CLI/environment overrides when present."""

        payload = self._read_payload()
        tab_payload = payload.get("open_tabs") if payload else None
        LOGGER.debug(
            "Settings loaded from %s: %d tabs, active_tab_id=%s",
            self._path,
            len(tab_payload) if isinstance(tab_payload, list) else 0,
            payload.get("active_tab_id") if payload else None,
        )
        settings = Settings()
        if payload:
            data = _filter_fields(payload)
            try:
                settings = Settings(**data)
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = Settings()

        if overrides:
            settings = self._apply_overrides(settings, overrides, source="CLI")

        settings = self._apply_env_overrides(settings)
        return _normalize(settings)

    def save(self, settings: Settings) -> Path:
        """Persist settings to disk with atomic file writes."""

        payload = self._serialize(settings)
        body = json.dumps(payload, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        open_tabs = settings.open_tabs or []
        LOGGER.debug(
            "Settings saved to %s: %d tabs, active_tab_id=%s",
            self._path,
            len(open_tabs),
            settings.active_tab_id,
        )
        return self._path

    def _serialize(self, settings: Settings) -> Dict[str, Any]:
        data = asdict(settings)
        data["version"] = _SETTINGS_VERSION
        return data

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            text = self._path.read_text(encoding="utf-8")
            payload = json.loads(text)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Settings file %s does not contain an object", self._path)
            return {}
        return payload

    def _apply_overrides(
        self,
        settings: Settings,
        overrides: Mapping[str, Any],
        *,
        source: str = "runtime",
    ) -> Settings:
        # None is a real value here: it clears optional fields such as active_tab_id
        known = {key: value for key, value in overrides.items() if key in _FIELD_NAMES}
        if not known:
            return settings
        LOGGER.debug("Applying %s settings overrides: %s", source, sorted(known))
        return replace(settings, **known)

    def _apply_env_overrides(self, settings: Settings) -> Settings:
        overrides: Dict[str, Any] = {}
        for env_name, (field_name, parse) in _ENV_OVERRIDES.items():
            raw = os.environ.get(env_name)
            if raw is None:
                continue
            try:
                overrides[field_name] = parse(raw)
            except ValueError:
                LOGGER.warning("Ignoring environment override %s=%r", env_name, raw)
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in payload.items() if key in _FIELD_NAMES}


def _normalize(settings: Settings) -> Settings:
    changes: Dict[str, Any] = {}
    try:
        capacity = int(settings.closed_tab_capacity)
    except (TypeError, ValueError):
        capacity = DEFAULT_HISTORY_CAPACITY
    if capacity < 1:
        capacity = DEFAULT_HISTORY_CAPACITY
    if capacity != settings.closed_tab_capacity:
        changes["closed_tab_capacity"] = capacity
    raw_palette = settings.project_palette if isinstance(settings.project_palette, list) else []
    palette = [str(color) for color in raw_palette if color]
    if not palette:
        changes["project_palette"] = list(DEFAULT_PROJECT_PALETTE)
    elif palette != settings.project_palette:
        changes["project_palette"] = palette
    for name, default in _FLOAT_DEFAULTS.items():
        current = getattr(settings, name)
        try:
            value = float(current)
        except (TypeError, ValueError):
            LOGGER.warning("Ignoring invalid %s=%r in settings; using %s", name, current, default)
            value = default
        if name == "autosave_delay" and value < 0:
            value = 0.0
        if value != current or not isinstance(current, float):
            changes[name] = value
    if settings.open_tabs is not None and not isinstance(settings.open_tabs, list):
        LOGGER.warning("Ignoring malformed open_tabs payload in settings")
        changes["open_tabs"] = None
    if changes:
        settings = replace(settings, **changes)
    return settings
