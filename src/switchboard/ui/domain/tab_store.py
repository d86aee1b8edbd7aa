"""Tab store domain manager.

Wraps TabWorkspace with event emission so UI surfaces, the coordinator and
persistence layers observe the registry instead of polling it. This is the
single source of truth for tab state.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, Iterator, Mapping

from ..events import (
    ActiveTabChanged,
    EventBus,
    TabClosed,
    TabCreated,
    WorkspaceChanged,
)

if TYPE_CHECKING:  # pragma: no cover
    from ...workspace.grouping import TabGroup
    from ...workspace.tab_model import Tab, TabPatch
    from ...workspace.workspace import TabWorkspace, WorkspaceChange

LOGGER = logging.getLogger(__name__)


class TabStore:
    """Domain manager for tab lifecycle.

    All tab operations should go through this class so every mutation is
    broadcast. Unknown tab ids are tolerated exactly like the workspace does.

    Events Emitted:
        - TabCreated: When a tab is created or reopened
        - TabClosed: When a tab is closed
        - ActiveTabChanged: On every activation and when the active slot empties
        - WorkspaceChanged: After every registry mutation
    """

    def __init__(self, workspace: TabWorkspace, event_bus: EventBus) -> None:
        """Initialize the tab store.

        Args:
            workspace: The underlying TabWorkspace to wrap.
            event_bus: The event bus for publishing events.
        """
        self._workspace = workspace
        self._bus = event_bus

        self._workspace.add_change_listener(self._on_workspace_changed)
        self._workspace.add_active_listener(self._on_active_tab_changed)

    # ------------------------------------------------------------------
    # Tab Lifecycle
    # ------------------------------------------------------------------

    def create_conversation_tab(
        self,
        project_path: str | None = None,
        *,
        title: str | None = None,
    ) -> Tab | None:
        """Create a conversation tab, or return None when no project resolves."""
        return self._workspace.create_conversation_tab(project_path, title=title)

    def open_file_tab(self, file_path: str, project_path: str | None = None) -> Tab:
        return self._workspace.open_file_tab(file_path, project_path)

    def open_task_board_tab(self, project_path: str) -> Tab:
        return self._workspace.open_task_board_tab(project_path)

    def open_docs_tab(self, page: str = "index") -> Tab:
        return self._workspace.open_docs_tab(page)

    def open_web_tab(
        self,
        url: str,
        project_path: str | None = None,
        *,
        title: str | None = None,
        background: bool = False,
    ) -> Tab:
        return self._workspace.open_web_tab(
            url, project_path, title=title, background=background
        )

    def close_tab(self, tab_id: str) -> Tab | None:
        """Close a tab.

        Returns:
            The closed Tab, or None if not found.
        """
        return self._workspace.close_tab(tab_id)

    def reopen_closed_tab(self) -> Tab | None:
        return self._workspace.reopen_closed_tab()

    def set_active_tab(self, tab_id: str) -> Tab | None:
        # The workspace reports back via the active listener
        return self._workspace.set_active_tab(tab_id)

    def move_tab(self, tab_id: str, new_order: int) -> bool:
        return self._workspace.move_tab(tab_id, new_order)

    def pin_tab(self, tab_id: str) -> bool:
        return self._workspace.pin_tab(tab_id)

    def unpin_tab(self, tab_id: str) -> bool:
        return self._workspace.unpin_tab(tab_id)

    def update_tab(self, tab_id: str, patch: TabPatch) -> Tab | None:
        return self._workspace.update_tab(tab_id, patch)

    def set_active_tab_title(self, title: str) -> Tab | None:
        return self._workspace.set_active_tab_title(title)

    # ------------------------------------------------------------------
    # Keyboard Navigation
    # ------------------------------------------------------------------

    def activate_visual_index(self, index: int) -> Tab | None:
        """Activate the tab at ``index`` of the grouped, flattened tab strip."""
        return self._workspace.activate_visual_index(index)

    def next_tab(self) -> Tab | None:
        return self._workspace.next_tab()

    def prev_tab(self) -> Tab | None:
        return self._workspace.prev_tab()

    # ------------------------------------------------------------------
    # Tab Access
    # ------------------------------------------------------------------

    def get_tab(self, tab_id: str) -> Tab | None:
        return self._workspace.get_tab(tab_id)

    @property
    def active_tab(self) -> Tab | None:
        """Get the currently active tab, if any."""
        return self._workspace.active_tab

    @property
    def active_tab_id(self) -> str | None:
        """Get the ID of the currently active tab, if any."""
        return self._workspace.active_tab_id

    def require_active_tab(self) -> Tab:
        """Get the active tab.

        Raises:
            RuntimeError: If no active tab exists.
        """
        return self._workspace.require_active_tab()

    def iter_tabs(self) -> Iterator[Tab]:
        return self._workspace.iter_tabs()

    def tab_count(self) -> int:
        return self._workspace.tab_count()

    def tab_ids(self) -> tuple[str, ...]:
        return self._workspace.tab_ids()

    def project_paths(self) -> tuple[str, ...]:
        return self._workspace.project_paths()

    def grouped_tabs(self) -> list[TabGroup]:
        """Return the grouped display view, recomputed from current state."""
        return self._workspace.grouped_tabs()

    def visual_tabs(self) -> list[Tab]:
        return self._workspace.visual_tabs()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def serialize_state(self) -> dict[str, Any]:
        return self._workspace.serialize_state()

    def restore(
        self,
        entries: Iterable[Mapping[str, Any]],
        active_tab_id: str | None = None,
    ) -> list[Tab]:
        """Seed the registry from persisted entries.

        Emits:
            TabCreated: For each restored tab.
            ActiveTabChanged: For the resolved active tab.
        """
        tabs = self._workspace.restore_state(entries, active_tab_id)
        LOGGER.debug(
            "TabStore.restore: %d tabs, active=%s", len(tabs), self._workspace.active_tab_id
        )
        return tabs

    @property
    def workspace(self) -> TabWorkspace:
        """Access the underlying workspace for advanced operations.

        Note: Prefer using TabStore methods; mutations made directly on the
        workspace are still broadcast through the registered listeners.
        """
        return self._workspace

    # ------------------------------------------------------------------
    # Internal Event Handling
    # ------------------------------------------------------------------

    def _on_workspace_changed(self, change: WorkspaceChange) -> None:
        tab = change.tab
        if change.reason in {"created", "reopened"} and tab is not None:
            LOGGER.debug(
                "TabStore: tab created tab_id=%s kind=%s project=%s",
                tab.id,
                tab.kind.value,
                tab.project_path,
            )
            self._bus.publish(TabCreated(
                tab_id=tab.id,
                kind=tab.kind.value,
                project_path=tab.project_path,
                reopened=change.reason == "reopened",
            ))
        elif change.reason == "closed" and tab is not None:
            LOGGER.debug("TabStore: tab closed tab_id=%s", tab.id)
            self._bus.publish(TabClosed(
                tab_id=tab.id,
                kind=tab.kind.value,
                project_path=tab.project_path,
            ))
        elif change.reason == "restored":
            for restored in self._workspace.iter_tabs():
                self._bus.publish(TabCreated(
                    tab_id=restored.id,
                    kind=restored.kind.value,
                    project_path=restored.project_path,
                ))

        self._bus.publish(WorkspaceChanged(
            reason=change.reason,
            tab_id=tab.id if tab is not None else None,
        ))

    def _on_active_tab_changed(self, tab: Tab | None) -> None:
        if tab is None:
            LOGGER.debug("TabStore: active tab cleared (no tabs)")
            self._bus.publish(ActiveTabChanged(tab_id=None))
            return

        LOGGER.debug(
            "TabStore: active tab changed to tab_id=%s, project=%s",
            tab.id,
            tab.project_path,
        )
        self._bus.publish(ActiveTabChanged(
            tab_id=tab.id,
            kind=tab.kind.value,
            project_path=tab.project_path,
        ))


__all__ = ["TabStore"]
