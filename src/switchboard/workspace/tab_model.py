"""Dataclasses describing workspace tabs and their immutable snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping

__all__ = [
    "TabKind",
    "PanelLayout",
    "Tab",
    "TabPatch",
    "ClosedTabSnapshot",
    "DEFAULT_TITLES",
]


def _utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""

    return datetime.now(timezone.utc)


class TabKind(str, Enum):
    """Kinds of workspace tabs. Fixed for the lifetime of a tab."""

    CONVERSATION = "conversation"
    FILE = "file"
    TASK_BOARD = "task-board"
    DOCUMENTATION = "documentation"
    WEB = "web"

    @property
    def session_bearing(self) -> bool:
        """Return ``True`` when tabs of this kind are backed by a session."""

        return self is TabKind.CONVERSATION


DEFAULT_TITLES: Mapping[TabKind, str] = {
    TabKind.CONVERSATION: "New Chat",
    TabKind.FILE: "Untitled",
    TabKind.TASK_BOARD: "Task Board",
    TabKind.DOCUMENTATION: "Documentation",
    TabKind.WEB: "Web",
}

_CONTEXT_PANEL_KINDS = frozenset({TabKind.CONVERSATION, TabKind.FILE})


@dataclass(frozen=True, slots=True)
class PanelLayout:
    """Last-used panel arrangement carried on a tab across switches."""

    sidebar_visible: bool = True
    context_panel_visible: bool = True
    context_panel_pane: str = "files"

    @classmethod
    def for_kind(cls, kind: TabKind) -> "PanelLayout":
        """Return the default layout for a freshly opened tab of ``kind``."""

        return cls(context_panel_visible=kind in _CONTEXT_PANEL_KINDS)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sidebar_visible": self.sidebar_visible,
            "context_panel_visible": self.context_panel_visible,
            "context_panel_pane": self.context_panel_pane,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | None, *, kind: TabKind) -> "PanelLayout":
        if not isinstance(payload, Mapping):
            return cls.for_kind(kind)
        default = cls.for_kind(kind)
        return cls(
            sidebar_visible=bool(payload.get("sidebar_visible", default.sidebar_visible)),
            context_panel_visible=bool(
                payload.get("context_panel_visible", default.context_panel_visible)
            ),
            context_panel_pane=str(payload.get("context_panel_pane") or default.context_panel_pane),
        )


@dataclass(frozen=True, slots=True)
class Tab:
    """A single open workspace tab.

    Tabs are immutable values; the owning workspace swaps in updated copies so
    readers never observe a partially applied mutation.

    ``resource_ref`` holds the file path for file tabs, the URL for web tabs and
    the page name for the documentation tab. ``order`` is only meaningful
    relative to other live tabs.
    """

    id: str
    kind: TabKind
    title: str
    order: int
    project_path: str | None = None
    session_ref: str | None = None
    resource_ref: str | None = None
    pinned: bool = False
    has_unseen_activity: bool = False
    last_activated_at: datetime = field(default_factory=_utcnow)
    scroll_position: int = 0
    input_draft: str = ""
    panel_layout: PanelLayout = field(default_factory=PanelLayout)

    @property
    def session_bearing(self) -> bool:
        return self.kind.session_bearing

    def to_payload(self) -> Dict[str, Any]:
        """Return the persisted representation of this tab.

        Scroll position, the unseen flag and the activation timestamp are
        session-local and intentionally left out.
        """

        return {
            "tab_id": self.id,
            "kind": self.kind.value,
            "title": self.title,
            "order": self.order,
            "project_path": self.project_path,
            "session_ref": self.session_ref,
            "resource_ref": self.resource_ref,
            "pinned": self.pinned,
            "input_draft": self.input_draft,
            "panel_layout": self.panel_layout.to_dict(),
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], *, now: datetime | None = None) -> "Tab":
        """Rebuild a tab from :meth:`to_payload` output, keeping its identifier."""

        kind = TabKind(payload.get("kind") or TabKind.CONVERSATION.value)
        return cls(
            id=str(payload["tab_id"]),
            kind=kind,
            title=str(payload.get("title") or DEFAULT_TITLES[kind]),
            order=int(payload["order"]),
            project_path=payload.get("project_path"),
            session_ref=payload.get("session_ref"),
            resource_ref=payload.get("resource_ref"),
            pinned=bool(payload.get("pinned", False)),
            has_unseen_activity=False,
            last_activated_at=now or _utcnow(),
            scroll_position=0,
            input_draft=str(payload.get("input_draft") or ""),
            panel_layout=PanelLayout.from_dict(payload.get("panel_layout"), kind=kind),
        )


@dataclass(frozen=True, slots=True)
class TabPatch:
    """Typed partial update applied through :meth:`TabWorkspace.update_tab`.

    ``None`` means "leave unchanged". Identity, kind, order, pin state and
    project binding are not patchable; they have dedicated operations.
    """

    title: str | None = None
    resource_ref: str | None = None
    session_ref: str | None = None
    has_unseen_activity: bool | None = None
    scroll_position: int | None = None
    input_draft: str | None = None
    panel_layout: PanelLayout | None = None

    def changes(self) -> Dict[str, Any]:
        return {
            item.name: getattr(self, item.name)
            for item in fields(self)
            if getattr(self, item.name) is not None
        }

    def is_empty(self) -> bool:
        return not self.changes()

    def apply(self, tab: Tab) -> Tab:
        changes = self.changes()
        if not changes:
            return tab
        return replace(tab, **changes)


@dataclass(frozen=True, slots=True)
class ClosedTabSnapshot:
    """Copy of a closed tab's content, without its identifier."""

    kind: TabKind
    title: str
    order: int
    project_path: str | None
    session_ref: str | None
    resource_ref: str | None
    pinned: bool
    scroll_position: int
    input_draft: str
    panel_layout: PanelLayout
    closed_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def from_tab(cls, tab: Tab) -> "ClosedTabSnapshot":
        return cls(
            kind=tab.kind,
            title=tab.title,
            order=tab.order,
            project_path=tab.project_path,
            session_ref=tab.session_ref,
            resource_ref=tab.resource_ref,
            pinned=tab.pinned,
            scroll_position=tab.scroll_position,
            input_draft=tab.input_draft,
            panel_layout=tab.panel_layout,
        )

    def restore(self, tab_id: str, *, order: int, now: datetime | None = None) -> Tab:
        """Return a live tab built from this snapshot under a fresh identity."""

        return Tab(
            id=tab_id,
            kind=self.kind,
            title=self.title,
            order=order,
            project_path=self.project_path,
            session_ref=self.session_ref,
            resource_ref=self.resource_ref,
            pinned=self.pinned,
            has_unseen_activity=False,
            last_activated_at=now or _utcnow(),
            scroll_position=self.scroll_position,
            input_draft=self.input_draft,
            panel_layout=self.panel_layout,
        )
