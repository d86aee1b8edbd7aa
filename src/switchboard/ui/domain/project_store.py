"""Project store domain service.

Tracks the single global "current project" and the project-scoped UI state
(file tree, selected file) that is only meaningful while a project is open.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, Sequence

from ..events import CurrentProjectChanged, EventBus

LOGGER = logging.getLogger(__name__)


class ProjectStore(Protocol):
    """Contract consumed by the project-path synchronizer."""

    def get_current_project(self) -> str | None:  # pragma: no cover - protocol
        ...

    def set_current_project(self, project_path: str | None) -> None:  # pragma: no cover - protocol
        ...


class ProjectState:
    """In-memory :class:`ProjectStore` implementation.

    Clearing the current project also clears the project-scoped state;
    switching to a different project resets the selection.

    Events Emitted:
        - CurrentProjectChanged: Whenever the current project value changes
    """

    def __init__(
        self,
        event_bus: EventBus | None = None,
        *,
        project_path: str | None = None,
    ) -> None:
        self._bus = event_bus
        self._project_path = project_path or None
        self.file_tree: list[Any] = []
        self.selected_file_path: str | None = None

    def get_current_project(self) -> str | None:
        return self._project_path

    @property
    def project_path(self) -> str | None:
        return self._project_path

    def set_current_project(self, project_path: str | None) -> None:
        project_path = project_path or None
        if project_path == self._project_path:
            return
        self._project_path = project_path
        self.selected_file_path = None
        if project_path is None:
            self.file_tree = []
        LOGGER.debug("ProjectState.set_current_project: %s", project_path)
        if self._bus is not None:
            self._bus.publish(CurrentProjectChanged(project_path=project_path))

    def set_file_tree(self, nodes: Sequence[Any]) -> None:
        self.file_tree = list(nodes)

    def select_file(self, path: str | None) -> None:
        self.selected_file_path = path


__all__ = ["ProjectStore", "ProjectState"]
