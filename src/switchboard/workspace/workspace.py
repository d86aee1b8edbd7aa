"""Workspace registry managing the ordered set of open tabs."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import PurePath
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Protocol
from urllib.parse import urlparse

from .grouping import ProjectColorAllocator, TabGroup, flatten_groups, group_tabs
from .history import ClosedTabHistory
from .tab_model import DEFAULT_TITLES, ClosedTabSnapshot, PanelLayout, Tab, TabKind, TabPatch

__all__ = [
    "ActiveTabListener",
    "TabFactory",
    "TabWorkspace",
    "WorkspaceChange",
    "WorkspaceChangeListener",
]

LOGGER = logging.getLogger(__name__)

DEFAULT_DOCS_PAGE = "index"


class ActiveTabListener(Protocol):
    """Callback signature fired whenever a tab is activated or the slot empties."""

    def __call__(self, tab: Optional[Tab]) -> None:  # pragma: no cover - protocol
        ...


@dataclass(frozen=True, slots=True)
class WorkspaceChange:
    """Describes a single registry mutation for observers."""

    reason: str
    tab: Tab | None = None


class WorkspaceChangeListener(Protocol):
    def __call__(self, change: WorkspaceChange) -> None:  # pragma: no cover - protocol
        ...


# Builds the kind-specific fields of a new tab; the workspace fills in id,
# order and the activation timestamp.
TabFactory = Callable[[], Dict[str, Any]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _generate_tab_id() -> str:
    return uuid.uuid4().hex


def _file_title(file_path: str) -> str:
    return PurePath(file_path.replace("\\", "/")).name or DEFAULT_TITLES[TabKind.FILE]


def _web_title(url: str) -> str:
    parsed = urlparse(url)
    if parsed.scheme == "file":
        name = PurePath(parsed.path).name
        if name.endswith(".html"):
            name = name[: -len(".html")]
        return name or "HTML"
    if parsed.scheme in {"http", "https"} and parsed.hostname:
        hostname = parsed.hostname
        return hostname[4:] if hostname.startswith("www.") else hostname
    return DEFAULT_TITLES[TabKind.WEB]


class TabWorkspace:
    """Owns every open tab, the active slot and the closed-tab history.

    All mutations are synchronous and funnel through named methods. Operations
    on unknown tab ids are no-ops returning ``None``/``False`` because UI races
    (a context-menu action targeting a tab that just closed) are expected.
    """

    def __init__(
        self,
        *,
        project_provider: Callable[[], str | None] | None = None,
        history: ClosedTabHistory | None = None,
        colors: ProjectColorAllocator | None = None,
        id_factory: Callable[[], str] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._project_provider = project_provider or (lambda: None)
        self._history = history if history is not None else ClosedTabHistory()
        self._colors = colors if colors is not None else ProjectColorAllocator()
        self._id_factory = id_factory or _generate_tab_id
        self._clock = clock or _utcnow
        self._tabs: Dict[str, Tab] = {}
        # Insertion sequence; drives the close fallback, not the display order.
        self._sequence: List[str] = []
        self._active_tab_id: str | None = None
        self._active_listeners: List[ActiveTabListener] = []
        self._change_listeners: List[WorkspaceChangeListener] = []

    # ------------------------------------------------------------------
    # Tab creation
    # ------------------------------------------------------------------
    def resolve_project(self, project_path: str | None = None) -> str | None:
        """Resolve the project a new conversation tab should bind to.

        Falls back from the explicit argument to the active tab, then the most
        recently closed tab with a project, then the global current project.
        """

        if project_path:
            return project_path
        active = self.active_tab
        if active is not None and active.project_path:
            return active.project_path
        closed_project = self._history.latest_project()
        if closed_project:
            return closed_project
        return self._project_provider() or None

    def create_conversation_tab(
        self,
        project_path: str | None = None,
        *,
        title: str | None = None,
    ) -> Tab | None:
        """Create and activate a conversation tab.

        Returns ``None`` (and creates nothing) when no project can be resolved.
        """

        resolved = self.resolve_project(project_path)
        if not resolved:
            LOGGER.debug("TabWorkspace.create_conversation_tab: refused, no project")
            return None
        tab = self._insert(
            kind=TabKind.CONVERSATION,
            title=title or DEFAULT_TITLES[TabKind.CONVERSATION],
            project_path=resolved,
        )
        self._notify_changed("created", tab)
        self._activate(tab.id)
        return self._tabs[tab.id]

    def find_or_create_tab(
        self,
        predicate: Callable[[Tab], bool],
        factory: TabFactory,
        *,
        background: bool = False,
    ) -> Tab:
        """Return the first tab matching ``predicate`` or create one from ``factory``.

        An existing match is activated unless ``background`` is set; a new tab
        is activated unless ``background`` is set.
        """

        existing = self.find_tab(predicate)
        if existing is not None:
            if not background:
                return self.set_active_tab(existing.id) or existing
            return existing

        tab = self._insert(**factory())
        self._notify_changed("created", tab)
        if not background:
            self._activate(tab.id)
        return self._tabs[tab.id]

    def open_file_tab(self, file_path: str, project_path: str | None = None) -> Tab:
        return self.find_or_create_tab(
            lambda tab: tab.kind is TabKind.FILE and tab.resource_ref == file_path,
            lambda: {
                "kind": TabKind.FILE,
                "title": _file_title(file_path),
                "project_path": project_path,
                "resource_ref": file_path,
            },
        )

    def open_task_board_tab(self, project_path: str) -> Tab:
        return self.find_or_create_tab(
            lambda tab: tab.kind is TabKind.TASK_BOARD and tab.project_path == project_path,
            lambda: {
                "kind": TabKind.TASK_BOARD,
                "title": DEFAULT_TITLES[TabKind.TASK_BOARD],
                "project_path": project_path,
            },
        )

    def open_docs_tab(self, page: str = DEFAULT_DOCS_PAGE) -> Tab:
        """Open the documentation tab; at most one ever exists.

        Reusing the existing tab navigates it to ``page``.
        """

        existing = self.find_tab(lambda tab: tab.kind is TabKind.DOCUMENTATION)
        if existing is not None:
            self.set_active_tab(existing.id)
            return self.update_tab(existing.id, TabPatch(resource_ref=page)) or existing
        return self.find_or_create_tab(
            lambda tab: tab.kind is TabKind.DOCUMENTATION,
            lambda: {
                "kind": TabKind.DOCUMENTATION,
                "title": DEFAULT_TITLES[TabKind.DOCUMENTATION],
                "resource_ref": page,
            },
        )

    def open_web_tab(
        self,
        url: str,
        project_path: str | None = None,
        *,
        title: str | None = None,
        background: bool = False,
    ) -> Tab:
        return self.find_or_create_tab(
            lambda tab: tab.kind is TabKind.WEB and tab.resource_ref == url,
            lambda: {
                "kind": TabKind.WEB,
                "title": title or _web_title(url),
                "project_path": project_path,
                "resource_ref": url,
            },
            background=background,
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def close_tab(self, tab_id: str) -> Tab | None:
        """Close a tab, remembering it in the closed-tab history.

        When the active tab closes, the tab now at its former position becomes
        active, or the one before it if the closed tab was last.
        """

        tab = self._tabs.pop(tab_id, None)
        if tab is None:
            LOGGER.debug("TabWorkspace.close_tab: unknown tab_id=%s", tab_id)
            return None
        index = self._sequence.index(tab_id)
        self._sequence.pop(index)
        self._history.push(ClosedTabSnapshot.from_tab(tab))
        self._notify_changed("closed", tab)

        if self._active_tab_id == tab_id:
            if self._sequence:
                fallback_index = index if index < len(self._sequence) else len(self._sequence) - 1
                self._active_tab_id = self._sequence[fallback_index]
            else:
                self._active_tab_id = None
            self._notify_active_listeners()
        return tab

    def set_active_tab(self, tab_id: str) -> Tab | None:
        """Activate a tab, stamping its activation time and clearing unseen activity.

        Re-activating the active tab refreshes that state and notifies again.
        """

        if tab_id not in self._tabs:
            LOGGER.debug("TabWorkspace.set_active_tab: unknown tab_id=%s", tab_id)
            return None
        self._activate(tab_id)
        return self._tabs[tab_id]

    def move_tab(self, tab_id: str, new_order: int) -> bool:
        """Move a tab to ``new_order``, shifting the tabs in between by one step."""

        tab = self._tabs.get(tab_id)
        if tab is None:
            LOGGER.debug("TabWorkspace.move_tab: unknown tab_id=%s", tab_id)
            return False
        old_order = tab.order
        if old_order == new_order:
            return False

        for other_id, other in list(self._tabs.items()):
            if other_id == tab_id:
                continue
            if old_order < new_order and old_order < other.order <= new_order:
                self._tabs[other_id] = replace(other, order=other.order - 1)
            elif new_order < old_order and new_order <= other.order < old_order:
                self._tabs[other_id] = replace(other, order=other.order + 1)
        self._tabs[tab_id] = replace(tab, order=new_order)
        self._notify_changed("moved", self._tabs[tab_id])
        return True

    def pin_tab(self, tab_id: str) -> bool:
        return self._set_pinned(tab_id, True)

    def unpin_tab(self, tab_id: str) -> bool:
        return self._set_pinned(tab_id, False)

    def update_tab(self, tab_id: str, patch: TabPatch) -> Tab | None:
        """Merge ``patch`` into a tab and return the updated value."""

        tab = self._tabs.get(tab_id)
        if tab is None:
            LOGGER.debug("TabWorkspace.update_tab: unknown tab_id=%s", tab_id)
            return None
        updated = patch.apply(tab)
        if updated is tab:
            return tab
        self._tabs[tab_id] = updated
        self._notify_changed("updated", updated)
        return updated

    def set_active_tab_title(self, title: str) -> Tab | None:
        if self._active_tab_id is None:
            return None
        return self.update_tab(self._active_tab_id, TabPatch(title=title))

    def reopen_closed_tab(self) -> Tab | None:
        """Recreate the most recently closed tab at the end under a new id."""

        snapshot = self._history.pop()
        if snapshot is None:
            return None
        tab = snapshot.restore(self._id_factory(), order=self._next_order(), now=self._clock())
        self._register(tab)
        self._notify_changed("reopened", tab)
        self._activate(tab.id)
        return self._tabs[tab.id]

    # ------------------------------------------------------------------
    # Visual navigation
    # ------------------------------------------------------------------
    def grouped_tabs(self) -> List[TabGroup]:
        return group_tabs(self.iter_tabs(), self._colors)

    def visual_tabs(self) -> List[Tab]:
        """Return tabs flattened in grouped display order."""

        return flatten_groups(self.grouped_tabs())

    def activate_visual_index(self, index: int) -> Tab | None:
        visual = self.visual_tabs()
        if 0 <= index < len(visual):
            return self.set_active_tab(visual[index].id)
        return None

    def next_tab(self) -> Tab | None:
        return self._cycle(1)

    def prev_tab(self) -> Tab | None:
        return self._cycle(-1)

    def _cycle(self, step: int) -> Tab | None:
        visual = self.visual_tabs()
        ids = [tab.id for tab in visual]
        if self._active_tab_id not in ids:
            return None
        index = (ids.index(self._active_tab_id) + step) % len(ids)
        return self.set_active_tab(ids[index])

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------
    def add_active_listener(self, listener: ActiveTabListener) -> None:
        self._active_listeners.append(listener)

    def remove_active_listener(self, listener: ActiveTabListener) -> None:
        try:
            self._active_listeners.remove(listener)
        except ValueError:
            pass

    def add_change_listener(self, listener: WorkspaceChangeListener) -> None:
        self._change_listeners.append(listener)

    def remove_change_listener(self, listener: WorkspaceChangeListener) -> None:
        try:
            self._change_listeners.remove(listener)
        except ValueError:
            pass

    def _notify_active_listeners(self) -> None:
        tab = self.active_tab
        for listener in list(self._active_listeners):
            listener(tab)

    def _notify_changed(self, reason: str, tab: Tab | None = None) -> None:
        change = WorkspaceChange(reason=reason, tab=tab)
        for listener in list(self._change_listeners):
            listener(change)

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------
    @property
    def active_tab_id(self) -> str | None:
        return self._active_tab_id

    @property
    def active_tab(self) -> Tab | None:
        if self._active_tab_id is None:
            return None
        return self._tabs.get(self._active_tab_id)

    def require_active_tab(self) -> Tab:
        tab = self.active_tab
        if tab is None:
            raise RuntimeError("No active tab available")
        return tab

    @property
    def history(self) -> ClosedTabHistory:
        return self._history

    @property
    def colors(self) -> ProjectColorAllocator:
        return self._colors

    def get_tab(self, tab_id: str) -> Tab | None:
        return self._tabs.get(tab_id)

    def find_tab(self, predicate: Callable[[Tab], bool]) -> Tab | None:
        for tab in self.iter_tabs():
            if predicate(tab):
                return tab
        return None

    def iter_tabs(self) -> Iterator[Tab]:
        for tab_id in self._sequence:
            yield self._tabs[tab_id]

    def tab_ids(self) -> tuple[str, ...]:
        return tuple(self._sequence)

    def tab_count(self) -> int:
        return len(self._sequence)

    def project_paths(self) -> tuple[str, ...]:
        """Return distinct project paths of open tabs in first-seen order."""

        seen: Dict[str, None] = {}
        for tab in self.iter_tabs():
            if tab.project_path:
                seen.setdefault(tab.project_path, None)
        return tuple(seen)

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------
    def serialize_tabs(self) -> list[dict[str, Any]]:
        return [tab.to_payload() for tab in self.iter_tabs()]

    def serialize_state(self) -> dict[str, Any]:
        """Return a structured workspace snapshot for persistence layers."""

        return {
            "open_tabs": self.serialize_tabs(),
            "active_tab_id": self.active_tab_id,
        }

    def restore_state(
        self,
        entries: Iterable[Mapping[str, Any]],
        active_tab_id: str | None = None,
    ) -> list[Tab]:
        """Replace the open tabs with previously serialized entries.

        Saved identifiers and orders are kept. The saved active tab is
        reactivated if present, otherwise the first restored tab.
        """

        now = self._clock()
        restored = [Tab.from_payload(entry, now=now) for entry in entries]
        self._tabs = {}
        self._sequence = []
        for tab in restored:
            if tab.id in self._tabs:
                LOGGER.warning("TabWorkspace.restore_state: duplicate tab_id=%s skipped", tab.id)
                continue
            self._register(tab)
        self._active_tab_id = None
        self._notify_changed("restored")

        if active_tab_id in self._tabs:
            self._activate(active_tab_id)  # type: ignore[arg-type]
        elif self._sequence:
            self._activate(self._sequence[0])
        else:
            self._notify_active_listeners()
        return [self._tabs[tab_id] for tab_id in self._sequence]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _next_order(self) -> int:
        if not self._tabs:
            return 0
        return max(tab.order for tab in self._tabs.values()) + 1

    def _insert(self, *, kind: TabKind, title: str, **values: Any) -> Tab:
        tab = Tab(
            id=self._id_factory(),
            kind=kind,
            title=title,
            order=self._next_order(),
            last_activated_at=self._clock(),
            panel_layout=values.pop("panel_layout", None) or PanelLayout.for_kind(kind),
            **values,
        )
        self._register(tab)
        LOGGER.debug(
            "TabWorkspace: created tab_id=%s kind=%s project=%s order=%d",
            tab.id,
            kind.value,
            tab.project_path,
            tab.order,
        )
        return tab

    def _register(self, tab: Tab) -> None:
        # Every project key, including None, gets its color when a tab enters,
        # never on a read of the grouped view.
        self._tabs[tab.id] = tab
        self._sequence.append(tab.id)
        self._colors.color_for(tab.project_path)

    def _activate(self, tab_id: str) -> None:
        tab = self._tabs[tab_id]
        self._tabs[tab_id] = replace(tab, last_activated_at=self._clock(), has_unseen_activity=False)
        self._active_tab_id = tab_id
        self._notify_changed("activated", self._tabs[tab_id])
        self._notify_active_listeners()

    def _set_pinned(self, tab_id: str, pinned: bool) -> bool:
        tab = self._tabs.get(tab_id)
        if tab is None:
            LOGGER.debug("TabWorkspace: pin change for unknown tab_id=%s", tab_id)
            return False
        if tab.pinned == pinned:
            return True
        self._tabs[tab_id] = replace(tab, pinned=pinned)
        self._notify_changed("pinned" if pinned else "unpinned", self._tabs[tab_id])
        return True
