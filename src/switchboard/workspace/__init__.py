"""Workspace package containing the tab registry and its read-side views."""

from .grouping import ProjectColorAllocator, TabGroup, group_tabs
from .history import ClosedTabHistory
from .tab_model import ClosedTabSnapshot, PanelLayout, Tab, TabKind, TabPatch
from .workspace import TabWorkspace, WorkspaceChange

__all__ = [
    "ClosedTabHistory",
    "ClosedTabSnapshot",
    "PanelLayout",
    "ProjectColorAllocator",
    "Tab",
    "TabGroup",
    "TabKind",
    "TabPatch",
    "TabWorkspace",
    "WorkspaceChange",
    "group_tabs",
]
