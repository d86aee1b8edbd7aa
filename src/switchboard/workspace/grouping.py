"""Read-side projection grouping tabs by project for display."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence

from .tab_model import Tab

__all__ = [
    "DEFAULT_PROJECT_PALETTE",
    "GENERAL_GROUP_NAME",
    "ProjectColorAllocator",
    "TabGroup",
    "flatten_groups",
    "group_tabs",
    "project_display_name",
    "sort_for_display",
]

DEFAULT_PROJECT_PALETTE: tuple[str, ...] = (
    "#4fc3f7",
    "#66bb6a",
    "#ffa726",
    "#ef5350",
    "#ab47bc",
    "#26c6da",
    "#ff7043",
    "#9ccc65",
)
GENERAL_GROUP_NAME = "General"
_SEPARATORS = re.compile(r"[\\/]")


class ProjectColorAllocator:
    """Hands out palette colors round-robin, memoized per project path.

    ``None`` (no project) is a key like any other. A color, once assigned, is
    never reassigned for the life of the allocator.
    """

    def __init__(self, palette: Sequence[str] = DEFAULT_PROJECT_PALETTE) -> None:
        self._palette: tuple[str, ...] = tuple(palette) or DEFAULT_PROJECT_PALETTE
        self._assigned: Dict[str | None, str] = {}

    @property
    def palette(self) -> tuple[str, ...]:
        return self._palette

    def color_for(self, project_path: str | None) -> str:
        color = self._assigned.get(project_path)
        if color is None:
            color = self._palette[len(self._assigned) % len(self._palette)]
            self._assigned[project_path] = color
        return color

    def known_projects(self) -> tuple[str | None, ...]:
        return tuple(self._assigned)

    def __contains__(self, project_path: object) -> bool:
        return project_path in self._assigned

    def __len__(self) -> int:
        return len(self._assigned)


@dataclass(frozen=True, slots=True)
class TabGroup:
    """Derived cluster of tabs sharing a project. Never stored."""

    project_path: str | None
    project_name: str
    color: str
    tabs: tuple[Tab, ...]
    is_collapsed: bool = False

    @property
    def min_order(self) -> int:
        return min(tab.order for tab in self.tabs)

    def tab_ids(self) -> tuple[str, ...]:
        return tuple(tab.id for tab in self.tabs)


def project_display_name(project_path: str | None) -> str:
    """Return the last path segment of ``project_path`` or ``"General"``."""

    if not project_path:
        return GENERAL_GROUP_NAME
    segments = _SEPARATORS.split(project_path)
    return segments[-1] or GENERAL_GROUP_NAME


def sort_for_display(tabs: Iterable[Tab]) -> List[Tab]:
    """Stable sort: pinned tabs first, then ascending ``order``."""

    return sorted(tabs, key=lambda tab: (not tab.pinned, tab.order))


def group_tabs(tabs: Iterable[Tab], colors: ProjectColorAllocator) -> List[TabGroup]:
    """Partition ``tabs`` by project in visual order.

    Within a group tabs keep the pinned-first order; groups are ordered by the
    smallest ``order`` among their tabs, so pinning never moves a group and a
    new project always lands last.
    """

    buckets: Dict[str | None, List[Tab]] = {}
    for tab in sort_for_display(tabs):
        buckets.setdefault(tab.project_path, []).append(tab)

    groups = [
        TabGroup(
            project_path=project_path,
            project_name=project_display_name(project_path),
            color=colors.color_for(project_path),
            tabs=tuple(members),
        )
        for project_path, members in buckets.items()
    ]
    groups.sort(key=lambda group: group.min_order)
    return groups


def flatten_groups(groups: Iterable[TabGroup]) -> List[Tab]:
    """Return tabs in the order the tab strip shows them."""

    return [tab for group in groups for tab in group.tabs]
