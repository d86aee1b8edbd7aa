"""Application layer for the workspace shell.

This package contains use cases that orchestrate domain operations and the
coordinator that reacts to registry events.

Use Cases:
    - Workspace Operations: Restore Workspace, Save Workspace

Coordinator:
    - WorkspaceCoordinator: Active-tab reactions, session wiring and autosave.
"""

from __future__ import annotations

from .workspace_ops import RestoreWorkspaceUseCase, SaveWorkspaceUseCase
from .coordinator import WorkspaceCoordinator

__all__: list[str] = [
    "RestoreWorkspaceUseCase",
    "SaveWorkspaceUseCase",
    "WorkspaceCoordinator",
]
