"""Command-line entry point for the switchboard workspace shell."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, get_args, get_origin, get_type_hints

from .services.settings import Settings, SettingsStore
from .ui.bootstrap import WorkspaceRuntime, create_runtime
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_LOGGER = logging.getLogger(__name__)
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}


def configure_logging(debug: bool = False, *, force: bool = False) -> None:
    """Configure structured logging for the application."""

    level = logging.DEBUG if debug else logging.INFO
    logging_utils.setup_logging(level, force=force)
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        settings = active_store.load(overrides=overrides)
    except Exception as exc:  # pragma: no cover
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        settings = Settings()
    return settings


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point invoked by the `switchboard` console script."""

    args = _parse_cli_args(argv)

    debug = _env_flag("SWITCHBOARD_DEBUG", default=False)
    configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("SWITCHBOARD_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    overrides_mapping: Dict[str, Any] | None = cli_overrides or None
    settings = load_settings(resolved_path, store=settings_store, overrides=overrides_mapping)

    if args.dump_settings:
        _dump_settings(settings, settings_store, overrides=cli_overrides)
        return

    if settings.debug_logging and not debug:
        configure_logging(True, force=True)

    # Inspection only: nothing is wired and nothing is written back
    runtime = create_runtime(settings)
    asyncio.run(runtime.coordinator.restore_workspace())

    if args.json:
        _dump_workspace_json(runtime)
    else:
        _print_workspace(runtime)


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="switchboard",
        add_help=True,
        description="Inspect the saved switchboard workspace or its configuration.",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.switchboard/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings before loading (repeatable).",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the grouped tab layout as JSON.",
    )
    return parser.parse_args(argv)


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    hints = get_type_hints(Settings)
    overrides: Dict[str, Any] = {}
    for entry in items:
        key, sep, raw_value = entry.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        if key not in hints:
            raise ValueError(f"Unknown setting '{key}'.")
        overrides[key] = _coerce_value(hints[key], raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    if type(None) in get_args(annotation) and raw_value.lower() in {"none", "null"}:
        return None
    target = _base_type(annotation)
    if target is bool:
        return _parse_bool(raw_value)
    if target in (int, float):
        return target(raw_value)
    if target is list:
        return _parse_json(raw_value or "[]", list, "List overrides must be valid JSON arrays")
    if target is dict:
        return _parse_json(raw_value or "{}", dict, "Dict overrides must be valid JSON objects")
    return raw_value


def _base_type(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin in (list, dict):
        return origin
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    return _base_type(args[0]) if args else annotation


def _parse_json(text: str, expected: type, message: str) -> Any:
    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(message) from exc
    if not isinstance(value, expected):
        raise ValueError(message)
    return value


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    payload = asdict(settings)
    metadata = {
        "path": str(store.path),
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": _active_env_overrides(),
    }
    output = {"settings": payload, "meta": metadata}
    json.dump(output, destination, indent=2)
    destination.write("\n")


def _active_env_overrides() -> list[str]:
    return sorted(name for name in os.environ if name.startswith("SWITCHBOARD_"))


def _workspace_layout(runtime: WorkspaceRuntime) -> Dict[str, Any]:
    active_id = runtime.tab_store.active_tab_id
    groups = []
    for group in runtime.tab_store.grouped_tabs():
        groups.append({
            "project_path": group.project_path,
            "project_name": group.project_name,
            "color": group.color,
            "tabs": [
                {
                    "tab_id": tab.id,
                    "kind": tab.kind.value,
                    "title": tab.title,
                    "pinned": tab.pinned,
                    "active": tab.id == active_id,
                }
                for tab in group.tabs
            ],
        })
    return {
        "current_project": runtime.project_state.get_current_project(),
        "active_tab_id": active_id,
        "groups": groups,
    }


def _dump_workspace_json(runtime: WorkspaceRuntime, *, stream: TextIO | None = None) -> None:
    destination = stream or sys.stdout
    json.dump(_workspace_layout(runtime), destination, indent=2)
    destination.write("\n")


def _print_workspace(runtime: WorkspaceRuntime, *, stream: TextIO | None = None) -> None:
    destination = stream or sys.stdout
    layout = _workspace_layout(runtime)
    if not layout["groups"]:
        destination.write("No open tabs.\n")
        return
    for group in layout["groups"]:
        destination.write(f"{group['project_name']} [{group['color']}]\n")
        for tab in group["tabs"]:
            marker = "*" if tab["active"] else " "
            pin = " (pinned)" if tab["pinned"] else ""
            destination.write(f"  {marker} {tab['title']} <{tab['kind']}>{pin}\n")


if __name__ == "__main__":  # pragma: no cover - manual invocation
    main()
