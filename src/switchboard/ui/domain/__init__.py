"""Domain layer for the workspace shell.

This package contains domain managers that encapsulate tab and session
state, independent of any rendering concerns. Each manager is responsible
for a specific domain area and communicates via the event bus.

Domain Managers:
    - TabStore: Tab lifecycle management
    - ProjectState: Current project and project-scoped state
    - ProjectPathSynchronizer: Active tab -> current project sync
    - SessionWireGuard: Deduplicated eager session wiring
    - WorkspaceSessionStore: Workspace persistence

All domain managers:
    - Receive dependencies via constructor injection
    - Emit events to notify other layers of state changes
"""

from __future__ import annotations

from .tab_store import TabStore
from .project_store import ProjectState, ProjectStore
from .project_sync import ProjectPathSynchronizer
from .session_wiring import SessionOpenResult, SessionService, SessionWireGuard, WireState
from .session_store import WorkspaceSessionStore

__all__: list[str] = [
    "TabStore",
    "ProjectState",
    "ProjectStore",
    "ProjectPathSynchronizer",
    "SessionOpenResult",
    "SessionService",
    "SessionWireGuard",
    "WireState",
    "WorkspaceSessionStore",
]
