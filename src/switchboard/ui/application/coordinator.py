"""Workspace coordinator facade.

This module provides the WorkspaceCoordinator - the layer that reacts to
registry changes instead of the registry reaching out to other subsystems.

The coordinator:
- Keeps the current project aligned with the active tab
- Eagerly wires session-bearing tabs through the wire guard
- Records session references returned by the session service
- Autosaves the workspace once it has been restored
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from ...workspace.tab_model import TabPatch
from ..domain.project_sync import ProjectPathSynchronizer
from ..events import (
    ActiveTabChanged,
    SessionListRefreshRequested,
    SessionWired,
    WorkspaceChanged,
)
from .workspace_ops import RestoreWorkspaceUseCase, SaveWorkspaceUseCase

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from ...services.settings import Settings
    from ...workspace.tab_model import Tab
    from ..domain.project_store import ProjectStore
    from ..domain.session_store import WorkspaceSessionStore
    from ..domain.session_wiring import SessionOpenResult, SessionWireGuard
    from ..domain.tab_store import TabStore
    from ..events import EventBus

LOGGER = logging.getLogger(__name__)

DEFAULT_AUTOSAVE_DELAY = 0.5


class WorkspaceCoordinator:
    """Facade wiring the tab registry to projects, sessions and persistence.

    Event handlers are bound methods, which the event bus holds weakly: the
    owner must keep a strong reference to the coordinator for as long as it
    should react.

    Example:
        coordinator = WorkspaceCoordinator(
            event_bus=bus,
            tab_store=tab_store,
            project_store=project_state,
            wire_guard=SessionWireGuard(service),
            session_store=WorkspaceSessionStore(settings_store, bus),
            settings=settings,
        )
        await coordinator.restore_workspace()
    """

    __slots__ = (
        "_event_bus",
        "_tab_store",
        "_project_store",
        "_project_sync",
        "_wire_guard",
        "_session_store",
        "_settings",
        "_autosave_delay",
        "_autosave_handle",
        "_restored",
        "_restore_uc",
        "_save_uc",
        "__weakref__",
    )

    def __init__(
        self,
        event_bus: EventBus,
        tab_store: TabStore,
        project_store: ProjectStore,
        wire_guard: SessionWireGuard | None = None,
        session_store: WorkspaceSessionStore | None = None,
        *,
        settings: Settings | None = None,
        autosave_delay: float | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            event_bus: Event bus shared with the domain managers.
            tab_store: Store for tab management.
            project_store: Holder of the current project.
            wire_guard: Guard for eager session wiring, or None to disable wiring.
            session_store: Persistence adapter, or None to disable autosave.
            settings: Settings object that receives the workspace snapshot.
            autosave_delay: Debounce delay in seconds; defaults to the settings value.
        """
        self._event_bus = event_bus
        self._tab_store = tab_store
        self._project_store = project_store
        self._project_sync = ProjectPathSynchronizer(project_store)
        self._wire_guard = wire_guard
        self._session_store = session_store
        self._settings = settings
        if autosave_delay is None:
            autosave_delay = getattr(settings, "autosave_delay", DEFAULT_AUTOSAVE_DELAY)
        self._autosave_delay = max(0.0, float(autosave_delay))
        self._autosave_handle: asyncio.TimerHandle | None = None
        self._restored = False
        self._restore_uc: RestoreWorkspaceUseCase | None = None
        self._save_uc: SaveWorkspaceUseCase | None = None

        if wire_guard is not None:
            wire_guard.set_wired_callback(self._on_session_wired)
        event_bus.subscribe(ActiveTabChanged, self._on_active_tab_changed)
        event_bus.subscribe(WorkspaceChanged, self._on_workspace_changed)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def tab_store(self) -> TabStore:
        return self._tab_store

    @property
    def wire_guard(self) -> SessionWireGuard | None:
        return self._wire_guard

    @property
    def settings(self) -> Settings | None:
        return self._settings

    @property
    def is_restored(self) -> bool:
        return self._restored

    @property
    def autosave_pending(self) -> bool:
        return self._autosave_handle is not None

    # ------------------------------------------------------------------
    # Workspace Operations
    # ------------------------------------------------------------------

    async def restore_workspace(self) -> list[Tab]:
        """Restore saved tabs, wire their sessions and enable autosave."""
        use_case = self._get_restore_workspace_uc()
        if use_case is None:
            LOGGER.debug("WorkspaceCoordinator.restore_workspace: no session store")
            self._restored = True
            return list(self._tab_store.iter_tabs())
        tabs = await use_case.execute(self._settings)
        self._restored = True
        # Session refs recorded while restoring have not been saved yet
        self._schedule_autosave()
        return tabs

    def save_workspace_state(self) -> bool:
        """Snapshot the registry into settings and persist it."""
        use_case = self._get_save_workspace_uc()
        if use_case is None:
            return False
        return use_case.execute()

    def flush(self) -> bool:
        """Cancel any pending autosave and save right away."""
        self._cancel_autosave()
        return self.save_workspace_state()

    def shutdown(self) -> None:
        """Flush pending state and stop reacting to workspace events."""
        if self._autosave_handle is not None:
            self.flush()
        self._event_bus.unsubscribe(ActiveTabChanged, self._on_active_tab_changed)
        self._event_bus.unsubscribe(WorkspaceChanged, self._on_workspace_changed)
        if self._wire_guard is not None:
            self._wire_guard.set_wired_callback(None)

    # ------------------------------------------------------------------
    # Event Handlers
    # ------------------------------------------------------------------

    def _on_active_tab_changed(self, event: ActiveTabChanged) -> None:
        if event.tab_id is None:
            return
        tab = self._tab_store.get_tab(event.tab_id)
        if tab is None:
            return
        self._project_sync.sync(tab)
        if self._wire_guard is not None:
            self._wire_guard.ensure_wired(tab)

    def _on_workspace_changed(self, event: WorkspaceChanged) -> None:
        self._schedule_autosave()

    def _on_session_wired(self, tab: Tab, result: SessionOpenResult) -> None:
        project_path = tab.project_path or ""
        live = self._tab_store.get_tab(tab.id)
        if live is not None and result.session_ref and live.session_ref != result.session_ref:
            self._tab_store.update_tab(tab.id, TabPatch(session_ref=result.session_ref))
        self._event_bus.publish(SessionWired(
            tab_id=tab.id,
            project_path=project_path,
            session_ref=result.session_ref,
        ))
        if project_path:
            self._event_bus.publish(SessionListRefreshRequested(project_paths=(project_path,)))

    # ------------------------------------------------------------------
    # Autosave
    # ------------------------------------------------------------------

    def _schedule_autosave(self) -> None:
        if not self._restored or self._session_store is None or self._settings is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._cancel_autosave()
            self.save_workspace_state()
            return
        self._cancel_autosave()
        self._autosave_handle = loop.call_later(self._autosave_delay, self._run_autosave)

    def _run_autosave(self) -> None:
        self._autosave_handle = None
        LOGGER.debug("WorkspaceCoordinator: autosaving workspace")
        self.save_workspace_state()

    def _cancel_autosave(self) -> None:
        handle = self._autosave_handle
        if handle is not None:
            handle.cancel()
            self._autosave_handle = None

    # ------------------------------------------------------------------
    # Use Case Factories
    # ------------------------------------------------------------------

    def _get_restore_workspace_uc(self) -> RestoreWorkspaceUseCase | None:
        if self._session_store is None:
            return None
        if self._restore_uc is None:
            self._restore_uc = RestoreWorkspaceUseCase(
                tab_store=self._tab_store,
                session_store=self._session_store,
                project_sync=self._project_sync,
                event_bus=self._event_bus,
                wire_guard=self._wire_guard,
            )
        return self._restore_uc

    def _get_save_workspace_uc(self) -> SaveWorkspaceUseCase | None:
        if self._session_store is None:
            return None
        if self._save_uc is None:
            self._save_uc = SaveWorkspaceUseCase(
                tab_store=self._tab_store,
                session_store=self._session_store,
                project_store=self._project_store,
                settings_provider=self._settings_provider,
            )
        return self._save_uc

    def _settings_provider(self) -> Any:
        return self._settings


__all__ = ["WorkspaceCoordinator", "DEFAULT_AUTOSAVE_DELAY"]
