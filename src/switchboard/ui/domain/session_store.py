"""Session store domain service.

Moves workspace state between the live tab registry and persisted settings.
Restored tab entries are validated before they reach the registry so a
hand-edited or stale settings file degrades to fewer tabs instead of a crash.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping

from jsonschema import Draft7Validator, ValidationError

from ...workspace.tab_model import TabKind
from ..events import EventBus, WorkspaceSaveFailed

if TYPE_CHECKING:  # pragma: no cover
    from ...services.settings import Settings, SettingsStore

LOGGER = logging.getLogger(__name__)

_NULLABLE_STRING = {"type": ["string", "null"]}

TAB_ENTRY_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["tab_id", "kind", "order"],
    "properties": {
        "tab_id": {"type": "string", "minLength": 1},
        "kind": {"type": "string", "enum": [kind.value for kind in TabKind]},
        "title": _NULLABLE_STRING,
        "order": {"type": "integer"},
        "project_path": _NULLABLE_STRING,
        "session_ref": _NULLABLE_STRING,
        "resource_ref": _NULLABLE_STRING,
        "pinned": {"type": "boolean"},
        "input_draft": _NULLABLE_STRING,
        "panel_layout": {
            "type": ["object", "null"],
            "properties": {
                "sidebar_visible": {"type": "boolean"},
                "context_panel_visible": {"type": "boolean"},
                "context_panel_pane": {"type": "string"},
            },
        },
    },
}

_TAB_ENTRY_VALIDATOR = Draft7Validator(TAB_ENTRY_SCHEMA)


class WorkspaceSessionStore:
    """Domain manager for workspace persistence.

    Handles syncing the serialized registry into settings, saving settings
    through the settings store, and reading validated entries back out.
    Persistence failures are logged and reported as ``False``; they never
    propagate into the tab registry.
    """

    def __init__(
        self,
        settings_store: SettingsStore | None,
        event_bus: EventBus | None = None,
    ) -> None:
        """Initialize the session store.

        Args:
            settings_store: Store for persisting settings, or None.
            event_bus: Receives WorkspaceSaveFailed when a save raises.
        """
        self._settings_store = settings_store
        self._bus = event_bus

    @property
    def settings_store(self) -> SettingsStore | None:
        return self._settings_store

    # ------------------------------------------------------------------
    # Settings Persistence
    # ------------------------------------------------------------------

    def persist_settings(self, settings: Settings | None) -> bool:
        """Persist settings to storage.

        Returns:
            True if settings were persisted successfully.
        """
        if settings is None:
            LOGGER.debug("WorkspaceSessionStore.persist_settings: skipping - no settings")
            return False

        if self._settings_store is None:
            LOGGER.debug("WorkspaceSessionStore.persist_settings: skipping - no store")
            return False

        try:
            self._settings_store.save(settings)
            LOGGER.debug("WorkspaceSessionStore.persist_settings: saved successfully")
            return True
        except Exception as exc:
            LOGGER.warning("WorkspaceSessionStore.persist_settings: failed: %s", exc)
            if self._bus is not None:
                self._bus.publish(WorkspaceSaveFailed(error=str(exc)))
            return False

    # ------------------------------------------------------------------
    # Workspace State Sync
    # ------------------------------------------------------------------

    def sync_workspace_state(
        self,
        workspace_state: Mapping[str, Any],
        settings: Settings | None,
        *,
        persist: bool = True,
    ) -> bool:
        """Copy serialized workspace state into settings.

        Args:
            workspace_state: Output of ``TabWorkspace.serialize_state``.
            settings: The settings object to update.
            persist: Whether to persist settings after update.

        Returns:
            True if state was synced (and persisted if requested).
        """
        if settings is None:
            LOGGER.debug("WorkspaceSessionStore.sync_workspace_state: skipping - no settings")
            return False

        settings.open_tabs = [dict(entry) for entry in workspace_state.get("open_tabs", [])]
        settings.active_tab_id = workspace_state.get("active_tab_id")

        tab_ids = [entry.get("tab_id", "?") for entry in settings.open_tabs]
        LOGGER.debug(
            "WorkspaceSessionStore.sync_workspace_state: %d tabs (ids=%s), active=%s",
            len(settings.open_tabs),
            tab_ids,
            settings.active_tab_id,
        )

        if persist:
            return self.persist_settings(settings)

        return True

    def load_workspace_state(
        self,
        settings: Settings | None,
    ) -> tuple[list[dict[str, Any]], str | None]:
        """Return the persisted tab entries that pass validation.

        Invalid entries are dropped with a warning. ``([], None)`` means
        nothing usable was saved.
        """
        if settings is None or not settings.open_tabs:
            return [], None

        entries: list[dict[str, Any]] = []
        for index, entry in enumerate(settings.open_tabs):
            error = validate_tab_entry(entry)
            if error is not None:
                LOGGER.warning(
                    "WorkspaceSessionStore: dropping saved tab #%d: %s", index, error
                )
                continue
            entries.append(dict(entry))

        active_tab_id = settings.active_tab_id
        if active_tab_id is not None and not isinstance(active_tab_id, str):
            active_tab_id = None
        LOGGER.debug(
            "WorkspaceSessionStore.load_workspace_state: %d/%d entries, active=%s",
            len(entries),
            len(settings.open_tabs),
            active_tab_id,
        )
        return entries, active_tab_id


def validate_tab_entry(entry: Any) -> str | None:
    """Return a readable validation error for ``entry``, or None if it is valid."""

    try:
        _TAB_ENTRY_VALIDATOR.validate(entry)
    except ValidationError as error:
        return _format_validation_error(error)
    return None


def _format_validation_error(error: ValidationError) -> str:
    path = ".".join(str(part) for part in error.path)
    if path:
        return f"{path}: {error.message}"
    return error.message


__all__ = ["TAB_ENTRY_SCHEMA", "WorkspaceSessionStore", "validate_tab_entry"]
