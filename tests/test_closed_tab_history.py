"""Tests for the closed-tab history buffer."""

from __future__ import annotations

from switchboard.workspace.history import DEFAULT_HISTORY_CAPACITY, ClosedTabHistory
from switchboard.workspace.tab_model import ClosedTabSnapshot, Tab, TabKind


def _snapshot(title: str, project_path: str | None = None) -> ClosedTabSnapshot:
    tab = Tab(id=title, kind=TabKind.FILE, title=title, order=0, project_path=project_path)
    return ClosedTabSnapshot.from_tab(tab)


def test_pop_is_lifo() -> None:
    history = ClosedTabHistory()
    history.push(_snapshot("a"))
    history.push(_snapshot("b"))

    assert history.peek().title == "b"
    assert history.pop().title == "b"
    assert history.pop().title == "a"
    assert history.pop() is None


def test_full_history_evicts_oldest() -> None:
    history = ClosedTabHistory()
    for index in range(12):
        history.push(_snapshot(f"tab-{index}"))

    assert history.capacity == DEFAULT_HISTORY_CAPACITY
    assert len(history) == 10
    assert [snapshot.title for snapshot in history][-1] == "tab-2"


def test_latest_project_skips_projectless_entries() -> None:
    history = ClosedTabHistory()
    assert history.latest_project() is None

    history.push(_snapshot("a", "/repo-a"))
    history.push(_snapshot("docs"))

    assert history.latest_project() == "/repo-a"


def test_capacity_is_at_least_one() -> None:
    history = ClosedTabHistory(0)
    history.push(_snapshot("a"))
    history.push(_snapshot("b"))
    assert history.capacity == 1
    assert [snapshot.title for snapshot in history] == ["b"]


def test_clear() -> None:
    history = ClosedTabHistory()
    history.push(_snapshot("a"))
    history.clear()
    assert len(history) == 0
