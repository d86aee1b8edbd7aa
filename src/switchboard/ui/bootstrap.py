"""Workspace bootstrap module.

This module provides the factory function that creates and wires together
every component of the workspace shell, returning a runtime ready to be
restored.

The bootstrap process:
1. Creates the event bus
2. Creates the project state and the tab workspace
3. Instantiates the domain stores
4. Creates the session wire guard (when a session service is given)
5. Instantiates the coordinator with all dependencies

Usage:
    from switchboard.ui.bootstrap import create_runtime

    runtime = create_runtime(settings, settings_store=store, session_service=service)
    await runtime.coordinator.restore_workspace()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..workspace.grouping import ProjectColorAllocator
from ..workspace.history import ClosedTabHistory
from ..workspace.workspace import TabWorkspace
from .application.coordinator import WorkspaceCoordinator
from .domain import (
    ProjectState,
    SessionWireGuard,
    TabStore,
    WorkspaceSessionStore,
)
from .events import EventBus

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from ..services.settings import Settings, SettingsStore
    from .domain.session_wiring import SessionService

_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class WorkspaceRuntime:
    """Every wired component of a running workspace shell.

    Holding the runtime keeps the coordinator (and its weakly referenced
    event handlers) alive.
    """

    event_bus: EventBus
    workspace: TabWorkspace
    tab_store: TabStore
    project_state: ProjectState
    session_store: WorkspaceSessionStore
    coordinator: WorkspaceCoordinator
    wire_guard: SessionWireGuard | None = None


def create_runtime(
    settings: Settings,
    *,
    settings_store: SettingsStore | None = None,
    session_service: SessionService | None = None,
) -> WorkspaceRuntime:
    """Create and wire all workspace components.

    Args:
        settings: Effective settings; also receives autosaved workspace state.
        settings_store: Store used for autosave, or None to keep state in memory.
        session_service: Service used for eager wiring, or None to skip wiring.

    Returns:
        The wired runtime. Nothing is restored yet.
    """
    _LOGGER.info("Bootstrapping workspace runtime...")

    event_bus = EventBus()
    project_state = ProjectState(event_bus, project_path=settings.last_project_path)

    workspace = TabWorkspace(
        project_provider=project_state.get_current_project,
        history=ClosedTabHistory(settings.closed_tab_capacity),
        colors=ProjectColorAllocator(settings.project_palette),
    )
    tab_store = TabStore(workspace=workspace, event_bus=event_bus)
    session_store = WorkspaceSessionStore(settings_store=settings_store, event_bus=event_bus)
    _LOGGER.debug("Created domain stores")

    wire_guard = None
    if session_service is not None:
        wire_guard = SessionWireGuard(session_service, timeout=settings.session_wire_timeout)
        _LOGGER.debug("Created session wire guard (timeout=%s)", settings.session_wire_timeout)

    coordinator = WorkspaceCoordinator(
        event_bus=event_bus,
        tab_store=tab_store,
        project_store=project_state,
        wire_guard=wire_guard,
        session_store=session_store,
        settings=settings,
    )
    _LOGGER.debug("Created workspace coordinator")

    return WorkspaceRuntime(
        event_bus=event_bus,
        workspace=workspace,
        tab_store=tab_store,
        project_state=project_state,
        session_store=session_store,
        coordinator=coordinator,
        wire_guard=wire_guard,
    )


__all__ = ["WorkspaceRuntime", "create_runtime"]
