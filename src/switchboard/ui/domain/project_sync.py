"""Keeps the global current project aligned with the active tab."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from ...workspace.tab_model import Tab
    from .project_store import ProjectStore

LOGGER = logging.getLogger(__name__)


class ProjectPathSynchronizer:
    """Pushes the active tab's project into the project store.

    The flow is one-way: changing the current project never touches tabs.
    """

    def __init__(self, project_store: ProjectStore) -> None:
        self._project_store = project_store

    def sync(self, tab: Tab | None) -> bool:
        """Align the current project with ``tab``.

        Returns:
            True if the current project was changed or cleared.
        """
        if tab is None:
            return False

        current = self._project_store.get_current_project()
        if tab.project_path and tab.project_path != current:
            LOGGER.debug(
                "ProjectPathSynchronizer: %s -> %s (tab_id=%s)",
                current,
                tab.project_path,
                tab.id,
            )
            self._project_store.set_current_project(tab.project_path)
            return True
        if not tab.project_path and current:
            LOGGER.debug("ProjectPathSynchronizer: clearing %s (tab_id=%s)", current, tab.id)
            self._project_store.set_current_project(None)
            return True
        return False


__all__ = ["ProjectPathSynchronizer"]
