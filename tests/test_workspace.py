"""Unit tests for the workspace/tab management layer."""

from __future__ import annotations

import pytest

from switchboard.workspace.grouping import DEFAULT_PROJECT_PALETTE
from switchboard.workspace.history import ClosedTabHistory
from switchboard.workspace.tab_model import TabKind, TabPatch
from switchboard.workspace.workspace import TabWorkspace, WorkspaceChange


def _orders(workspace: TabWorkspace) -> dict[str, int]:
    return {tab.id: tab.order for tab in workspace.iter_tabs()}


class TestCreation:
    def test_orders_strictly_increase(self, workspace: TabWorkspace) -> None:
        tabs = [workspace.create_conversation_tab("/repo") for _ in range(4)]
        orders = [tab.order for tab in tabs]
        assert orders == [0, 1, 2, 3]
        assert len(set(orders)) == len(orders)

    def test_new_tab_becomes_active(self, workspace: TabWorkspace) -> None:
        first = workspace.create_conversation_tab("/repo")
        second = workspace.create_conversation_tab("/repo")
        assert workspace.active_tab_id == second.id
        assert first.id != second.id

    def test_order_continues_after_highest_live_tab(self, workspace: TabWorkspace) -> None:
        workspace.create_conversation_tab("/repo")
        second = workspace.create_conversation_tab("/repo")
        workspace.close_tab(second.id)
        third = workspace.create_conversation_tab("/repo")
        assert third.order == 1

    def test_refuses_conversation_without_project(self, workspace: TabWorkspace) -> None:
        assert workspace.create_conversation_tab() is None
        assert workspace.tab_count() == 0
        assert workspace.active_tab_id is None

    def test_project_resolves_from_active_tab(self, workspace: TabWorkspace) -> None:
        workspace.create_conversation_tab("/repo-a")
        tab = workspace.create_conversation_tab()
        assert tab is not None
        assert tab.project_path == "/repo-a"

    def test_project_resolves_from_closed_history(self, workspace: TabWorkspace) -> None:
        closed = workspace.create_conversation_tab("/repo-a")
        workspace.close_tab(closed.id)
        tab = workspace.create_conversation_tab()
        assert tab is not None
        assert tab.project_path == "/repo-a"

    def test_project_resolves_from_provider(self, make_workspace) -> None:
        workspace = make_workspace(project_provider=lambda: "/global")
        tab = workspace.create_conversation_tab()
        assert tab is not None
        assert tab.project_path == "/global"
        assert tab.title == "New Chat"

    def test_explicit_project_wins(self, make_workspace) -> None:
        workspace = make_workspace(project_provider=lambda: "/global")
        workspace.create_conversation_tab("/active")
        tab = workspace.create_conversation_tab("/explicit")
        assert tab.project_path == "/explicit"


class TestFindOrCreate:
    def test_file_tab_dedup_is_idempotent(self, workspace: TabWorkspace) -> None:
        first = workspace.open_file_tab("/repo/src/main.py", "/repo")
        second = workspace.open_file_tab("/repo/src/main.py", "/repo")

        assert first.id == second.id
        assert workspace.tab_count() == 1
        assert first.title == "main.py"
        assert first.resource_ref == "/repo/src/main.py"

    def test_existing_match_is_activated(self, workspace: TabWorkspace) -> None:
        file_tab = workspace.open_file_tab("/repo/a.py", "/repo")
        workspace.create_conversation_tab("/repo")
        workspace.open_file_tab("/repo/a.py", "/repo")
        assert workspace.active_tab_id == file_tab.id

    def test_task_board_is_one_per_project(self, workspace: TabWorkspace) -> None:
        board_a = workspace.open_task_board_tab("/repo-a")
        board_b = workspace.open_task_board_tab("/repo-b")
        again = workspace.open_task_board_tab("/repo-a")

        assert board_a.id == again.id
        assert board_a.id != board_b.id
        assert board_a.title == "Task Board"

    def test_documentation_tab_is_singleton(self, workspace: TabWorkspace) -> None:
        docs = workspace.open_docs_tab()
        workspace.create_conversation_tab("/repo")
        again = workspace.open_docs_tab("getting-started")

        assert docs.resource_ref == "index"
        assert again.id == docs.id
        assert again.resource_ref == "getting-started"
        assert workspace.active_tab_id == docs.id
        assert sum(1 for tab in workspace.iter_tabs() if tab.kind is TabKind.DOCUMENTATION) == 1

    def test_web_tab_title_and_dedup(self, workspace: TabWorkspace) -> None:
        web = workspace.open_web_tab("https://www.example.com/page")
        again = workspace.open_web_tab("https://www.example.com/page")
        local = workspace.open_web_tab("file:///tmp/pilot/report.html")

        assert web.title == "example.com"
        assert again.id == web.id
        assert local.title == "report"
        assert workspace.tab_count() == 2

    def test_web_tab_explicit_title(self, workspace: TabWorkspace) -> None:
        web = workspace.open_web_tab("https://example.org", title="Docs")
        assert web.title == "Docs"

    def test_background_web_tab_keeps_active_tab(self, workspace: TabWorkspace) -> None:
        chat = workspace.create_conversation_tab("/repo")
        web = workspace.open_web_tab("https://example.com", background=True)

        assert workspace.active_tab_id == chat.id
        assert workspace.get_tab(web.id) is not None

        workspace.open_web_tab("https://example.com", background=True)
        assert workspace.active_tab_id == chat.id
        assert workspace.tab_count() == 2

    def test_context_panel_defaults_per_kind(self, workspace: TabWorkspace) -> None:
        chat = workspace.create_conversation_tab("/repo")
        board = workspace.open_task_board_tab("/repo")
        assert chat.panel_layout.context_panel_visible
        assert not board.panel_layout.context_panel_visible


class TestClose:
    def test_closing_last_active_falls_back_to_previous(self, workspace: TabWorkspace) -> None:
        a = workspace.create_conversation_tab("/repo")
        b = workspace.create_conversation_tab("/repo")
        c = workspace.create_conversation_tab("/repo")
        assert workspace.active_tab_id == c.id

        workspace.close_tab(c.id)

        assert workspace.active_tab_id == b.id
        assert workspace.tab_ids() == (a.id, b.id)

    def test_closing_middle_active_falls_back_to_next(self, workspace: TabWorkspace) -> None:
        workspace.create_conversation_tab("/repo")
        b = workspace.create_conversation_tab("/repo")
        c = workspace.create_conversation_tab("/repo")
        workspace.set_active_tab(b.id)

        workspace.close_tab(b.id)

        assert workspace.active_tab_id == c.id

    def test_closing_inactive_tab_keeps_active(self, workspace: TabWorkspace) -> None:
        a = workspace.create_conversation_tab("/repo")
        b = workspace.create_conversation_tab("/repo")
        workspace.close_tab(a.id)
        assert workspace.active_tab_id == b.id

    def test_closing_only_tab_clears_active_and_notifies(self, workspace: TabWorkspace) -> None:
        seen: list[object] = []
        tab = workspace.create_conversation_tab("/repo")
        workspace.add_active_listener(seen.append)

        closed = workspace.close_tab(tab.id)

        assert closed is not None and closed.id == tab.id
        assert workspace.active_tab_id is None
        assert seen == [None]
        with pytest.raises(RuntimeError):
            workspace.require_active_tab()


class TestMove:
    def test_move_left_shifts_others_right(self, workspace: TabWorkspace) -> None:
        b = workspace.create_conversation_tab("/repo")
        c = workspace.create_conversation_tab("/repo")
        d = workspace.create_conversation_tab("/repo")
        a = workspace.create_conversation_tab("/repo")

        assert workspace.move_tab(a.id, 0)

        assert _orders(workspace) == {a.id: 0, b.id: 1, c.id: 2, d.id: 3}

    def test_move_right_shifts_others_left(self, workspace: TabWorkspace) -> None:
        a = workspace.create_conversation_tab("/repo")
        b = workspace.create_conversation_tab("/repo")
        c = workspace.create_conversation_tab("/repo")

        assert workspace.move_tab(a.id, 2)

        assert _orders(workspace) == {b.id: 0, c.id: 1, a.id: 2}

    def test_move_to_same_order_is_noop(self, workspace: TabWorkspace) -> None:
        tab = workspace.create_conversation_tab("/repo")
        assert workspace.move_tab(tab.id, tab.order) is False


class TestPinAndUpdate:
    def test_pin_and_unpin(self, workspace: TabWorkspace) -> None:
        tab = workspace.create_conversation_tab("/repo")
        assert workspace.pin_tab(tab.id)
        assert workspace.get_tab(tab.id).pinned
        assert workspace.unpin_tab(tab.id)
        assert not workspace.get_tab(tab.id).pinned

    def test_update_tab_applies_patch(self, workspace: TabWorkspace) -> None:
        tab = workspace.create_conversation_tab("/repo")
        updated = workspace.update_tab(tab.id, TabPatch(input_draft="draft", scroll_position=4))

        assert updated is not None
        assert updated.input_draft == "draft"
        assert workspace.get_tab(tab.id) == updated
        assert updated.order == tab.order

    def test_set_active_tab_title(self, workspace: TabWorkspace) -> None:
        assert workspace.set_active_tab_title("Nothing active") is None
        tab = workspace.create_conversation_tab("/repo")
        renamed = workspace.set_active_tab_title("Planning")
        assert renamed is not None and renamed.id == tab.id
        assert renamed.title == "Planning"

    def test_activation_clears_unseen_and_stamps_time(self, workspace: TabWorkspace) -> None:
        first = workspace.create_conversation_tab("/repo")
        workspace.create_conversation_tab("/repo")
        workspace.update_tab(first.id, TabPatch(has_unseen_activity=True))
        before = workspace.get_tab(first.id).last_activated_at

        activated = workspace.set_active_tab(first.id)

        assert activated is not None
        assert activated.has_unseen_activity is False
        assert activated.last_activated_at > before


class TestUnknownIds:
    def test_operations_on_unknown_ids_are_noops(self, workspace: TabWorkspace) -> None:
        tab = workspace.create_conversation_tab("/repo")

        assert workspace.close_tab("missing") is None
        assert workspace.set_active_tab("missing") is None
        assert workspace.move_tab("missing", 0) is False
        assert workspace.pin_tab("missing") is False
        assert workspace.unpin_tab("missing") is False
        assert workspace.update_tab("missing", TabPatch(title="x")) is None
        assert workspace.active_tab_id == tab.id
        assert workspace.tab_count() == 1

    def test_reopen_with_empty_history_is_noop(self, workspace: TabWorkspace) -> None:
        assert workspace.reopen_closed_tab() is None
        assert workspace.tab_count() == 0


class TestReopen:
    def test_history_keeps_ten_most_recent(self, workspace: TabWorkspace) -> None:
        tabs = [workspace.open_file_tab(f"/repo/f{index}.py", "/repo") for index in range(12)]
        for tab in tabs:
            workspace.close_tab(tab.id)

        assert len(workspace.history) == 10

        reopened_titles = []
        reopened_ids = []
        while (reopened := workspace.reopen_closed_tab()) is not None:
            reopened_titles.append(reopened.title)
            reopened_ids.append(reopened.id)

        assert reopened_titles == [f"f{index}.py" for index in range(11, 1, -1)]
        assert not set(reopened_ids) & {tab.id for tab in tabs}

    def test_reopen_appends_and_activates(self, workspace: TabWorkspace) -> None:
        a = workspace.create_conversation_tab("/repo")
        workspace.update_tab(a.id, TabPatch(input_draft="unsent"))
        workspace.create_conversation_tab("/repo")
        workspace.close_tab(a.id)

        reopened = workspace.reopen_closed_tab()

        assert reopened is not None
        assert reopened.id != a.id
        assert reopened.order == 2
        assert reopened.input_draft == "unsent"
        assert workspace.active_tab_id == reopened.id

    def test_custom_history_capacity(self, make_workspace) -> None:
        workspace = make_workspace(history=ClosedTabHistory(2))
        for index in range(3):
            tab = workspace.open_file_tab(f"/f{index}")
            workspace.close_tab(tab.id)
        assert len(workspace.history) == 2


class TestGroupingAndNavigation:
    def test_groups_by_project_in_creation_order(self, workspace: TabWorkspace) -> None:
        t1 = workspace.create_conversation_tab("/repo-a")
        t2 = workspace.create_conversation_tab("/repo-b")
        t3 = workspace.create_conversation_tab("/repo-a")

        groups = workspace.grouped_tabs()

        assert [group.project_path for group in groups] == ["/repo-a", "/repo-b"]
        assert groups[0].tab_ids() == (t1.id, t3.id)
        assert groups[1].tab_ids() == (t2.id,)
        assert groups[0].project_name == "repo-a"
        assert groups[0].color == DEFAULT_PROJECT_PALETTE[0]
        assert groups[1].color == DEFAULT_PROJECT_PALETTE[1]

    def test_pinning_reorders_within_group_only(self, workspace: TabWorkspace) -> None:
        t1 = workspace.create_conversation_tab("/repo-a")
        t2 = workspace.create_conversation_tab("/repo-b")
        t3 = workspace.create_conversation_tab("/repo-a")

        workspace.pin_tab(t3.id)
        workspace.pin_tab(t2.id)
        groups = workspace.grouped_tabs()

        assert [group.project_path for group in groups] == ["/repo-a", "/repo-b"]
        assert groups[0].tab_ids() == (t3.id, t1.id)
        assert groups[1].tab_ids() == (t2.id,)

    def test_colors_are_memoized_per_project(self, workspace: TabWorkspace) -> None:
        workspace.create_conversation_tab("/repo-a")
        closed = workspace.create_conversation_tab("/repo-b")
        workspace.close_tab(closed.id)
        workspace.create_conversation_tab("/repo-c")
        workspace.create_conversation_tab("/repo-b")

        colors = {group.project_path: group.color for group in workspace.grouped_tabs()}
        assert colors["/repo-b"] == DEFAULT_PROJECT_PALETTE[1]
        assert colors["/repo-c"] == DEFAULT_PROJECT_PALETTE[2]

    def test_projectless_colors_do_not_depend_on_reads(self, make_workspace) -> None:
        read_early = make_workspace()
        read_late = make_workspace()
        for workspace in (read_early, read_late):
            workspace.open_docs_tab()
            if workspace is read_early:
                workspace.grouped_tabs()
            workspace.create_conversation_tab("/repo-a")

        for workspace in (read_early, read_late):
            assert workspace.colors.known_projects() == (None, "/repo-a")
            colors = {group.project_path: group.color for group in workspace.grouped_tabs()}
            assert colors == {None: DEFAULT_PROJECT_PALETTE[0], "/repo-a": DEFAULT_PROJECT_PALETTE[1]}

    def test_visual_index_uses_grouped_order(self, workspace: TabWorkspace) -> None:
        t1 = workspace.create_conversation_tab("/repo-a")
        t2 = workspace.create_conversation_tab("/repo-b")
        t3 = workspace.create_conversation_tab("/repo-a")

        assert [tab.id for tab in workspace.visual_tabs()] == [t1.id, t3.id, t2.id]
        assert workspace.activate_visual_index(1).id == t3.id
        assert workspace.activate_visual_index(5) is None
        assert workspace.active_tab_id == t3.id

    def test_next_and_prev_wrap(self, workspace: TabWorkspace) -> None:
        t1 = workspace.create_conversation_tab("/repo-a")
        t2 = workspace.create_conversation_tab("/repo-b")
        t3 = workspace.create_conversation_tab("/repo-a")
        workspace.set_active_tab(t3.id)

        assert workspace.next_tab().id == t2.id
        assert workspace.next_tab().id == t1.id
        assert workspace.prev_tab().id == t2.id

    def test_navigation_without_active_tab_is_noop(self, workspace: TabWorkspace) -> None:
        assert workspace.next_tab() is None
        assert workspace.prev_tab() is None


class TestListenersAndPersistence:
    def test_change_listener_receives_reasons(self, workspace: TabWorkspace) -> None:
        changes: list[WorkspaceChange] = []
        workspace.add_change_listener(changes.append)

        tab = workspace.create_conversation_tab("/repo")
        workspace.pin_tab(tab.id)
        workspace.close_tab(tab.id)
        workspace.remove_change_listener(changes.append)
        workspace.reopen_closed_tab()

        assert [change.reason for change in changes] == ["created", "activated", "pinned", "closed"]

    def test_reactivation_notifies_again(self, workspace: TabWorkspace) -> None:
        seen: list[str | None] = []
        tab = workspace.create_conversation_tab("/repo")
        workspace.add_active_listener(lambda active: seen.append(active.id if active else None))

        workspace.set_active_tab(tab.id)
        workspace.set_active_tab(tab.id)

        assert seen == [tab.id, tab.id]

    def test_serialize_and_restore_keep_ids(self, workspace: TabWorkspace, make_workspace) -> None:
        a = workspace.create_conversation_tab("/repo-a")
        b = workspace.open_file_tab("/repo-b/x.md", "/repo-b")
        workspace.set_active_tab(a.id)
        state = workspace.serialize_state()

        restored = make_workspace()
        tabs = restored.restore_state(state["open_tabs"], state["active_tab_id"])

        assert [tab.id for tab in tabs] == [a.id, b.id]
        assert restored.active_tab_id == a.id
        assert restored.get_tab(b.id).resource_ref == "/repo-b/x.md"
        assert _orders(restored) == _orders(workspace)

    def test_restore_falls_back_to_first_tab(self, workspace: TabWorkspace) -> None:
        entries = [
            {"tab_id": "x", "kind": "conversation", "order": 0, "project_path": "/p"},
            {"tab_id": "y", "kind": "file", "order": 1, "resource_ref": "/p/y"},
            {"tab_id": "x", "kind": "file", "order": 2},
        ]
        tabs = workspace.restore_state(entries, "gone")

        assert [tab.id for tab in tabs] == ["x", "y"]
        assert workspace.active_tab_id == "x"

    def test_project_paths_are_distinct(self, workspace: TabWorkspace) -> None:
        workspace.create_conversation_tab("/repo-a")
        workspace.open_docs_tab()
        workspace.create_conversation_tab("/repo-b")
        workspace.create_conversation_tab("/repo-a")
        assert workspace.project_paths() == ("/repo-a", "/repo-b")
