"""Workspace operation use cases.

This module provides use cases for workspace lifecycle operations:
- RestoreWorkspaceUseCase: Seed the registry from saved settings and wire sessions
- SaveWorkspaceUseCase: Snapshot the registry into settings
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from ..events import SessionListRefreshRequested, WorkspaceRestored

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from ...services.settings import Settings
    from ...workspace.tab_model import Tab
    from ..domain.project_sync import ProjectPathSynchronizer
    from ..domain.project_store import ProjectStore
    from ..domain.session_store import WorkspaceSessionStore
    from ..domain.session_wiring import SessionWireGuard
    from ..domain.tab_store import TabStore
    from ..events import EventBus

LOGGER = logging.getLogger(__name__)


class RestoreWorkspaceUseCase:
    """Use case for restoring the workspace from saved settings.

    Handles:
    - Rebuilding saved tabs with their identifiers and orders
    - Creating a fresh conversation tab when nothing was saved
    - Aligning the current project with the restored active tab
    - Wiring conversation tabs sequentially, active tab first
    - Requesting a session-list refresh for the restored projects

    Events Emitted:
        - TabCreated: For each restored tab
        - ActiveTabChanged: When the active tab is resolved
        - SessionListRefreshRequested: After wiring, when any project is open
        - WorkspaceRestored: After restore completes
    """

    __slots__ = (
        "_tab_store",
        "_session_store",
        "_project_sync",
        "_wire_guard",
        "_event_bus",
    )

    def __init__(
        self,
        tab_store: TabStore,
        session_store: WorkspaceSessionStore,
        project_sync: ProjectPathSynchronizer,
        event_bus: EventBus,
        wire_guard: SessionWireGuard | None = None,
    ) -> None:
        """Initialize the use case.

        Args:
            tab_store: Store for tab management.
            session_store: Store for workspace persistence.
            project_sync: Synchronizer for the current project.
            event_bus: Event bus for publishing events.
            wire_guard: Guard used to wire conversation tabs, or None to skip wiring.
        """
        self._tab_store = tab_store
        self._session_store = session_store
        self._project_sync = project_sync
        self._event_bus = event_bus
        self._wire_guard = wire_guard

    async def execute(self, settings: Settings | None) -> list[Tab]:
        """Restore the workspace.

        Returns:
            The live tabs after restore, in insertion sequence.
        """
        entries, active_tab_id = self._session_store.load_workspace_state(settings)
        LOGGER.debug(
            "RestoreWorkspaceUseCase: will restore %d tabs, active=%s",
            len(entries),
            active_tab_id,
        )

        tabs = self._tab_store.restore(entries, active_tab_id) if entries else []
        if not tabs:
            # Created tabs are activated by the registry
            if self._tab_store.create_conversation_tab() is None:
                LOGGER.debug("RestoreWorkspaceUseCase: no project to open a first tab under")

        active = self._tab_store.active_tab
        self._project_sync.sync(active)

        await self._wire_sessions(active)

        project_paths = self._tab_store.project_paths()
        if project_paths:
            self._event_bus.publish(SessionListRefreshRequested(project_paths=project_paths))

        self._event_bus.publish(WorkspaceRestored(
            tab_count=self._tab_store.tab_count(),
            active_tab_id=self._tab_store.active_tab_id,
        ))
        LOGGER.debug(
            "RestoreWorkspaceUseCase: restored %d tabs, active=%s",
            self._tab_store.tab_count(),
            self._tab_store.active_tab_id,
        )
        return list(self._tab_store.iter_tabs())

    async def _wire_sessions(self, active: Tab | None) -> None:
        guard = self._wire_guard
        if guard is None:
            return
        candidates = [tab for tab in self._tab_store.iter_tabs() if guard.is_wireable(tab)]
        if active is not None:
            candidates.sort(key=lambda tab: tab.id != active.id)
        for tab in candidates:
            # Wiring can replace the tab value; always hand the guard the live copy
            current = self._tab_store.get_tab(tab.id)
            if current is None:
                continue
            wired = await guard.wire(current)
            if not wired:
                LOGGER.debug(
                    "RestoreWorkspaceUseCase: tab %s left for lazy session init", tab.id
                )


class SaveWorkspaceUseCase:
    """Use case for snapshotting the registry into settings.

    Also records the current project so the next launch can resolve a
    project for its first conversation tab.
    """

    __slots__ = ("_tab_store", "_session_store", "_project_store", "_settings_provider")

    def __init__(
        self,
        tab_store: TabStore,
        session_store: WorkspaceSessionStore,
        project_store: ProjectStore | None = None,
        *,
        settings_provider: Callable[[], Settings | None] | None = None,
    ) -> None:
        self._tab_store = tab_store
        self._session_store = session_store
        self._project_store = project_store
        self._settings_provider = settings_provider or (lambda: None)

    def execute(self, *, persist: bool = True) -> bool:
        settings = self._settings_provider()
        if settings is None:
            LOGGER.debug("SaveWorkspaceUseCase: skipping - no settings")
            return False
        if self._project_store is not None:
            current = self._project_store.get_current_project()
            if current:
                settings.last_project_path = current
        return self._session_store.sync_workspace_state(
            self._tab_store.serialize_state(),
            settings,
            persist=persist,
        )


__all__ = ["RestoreWorkspaceUseCase", "SaveWorkspaceUseCase"]
