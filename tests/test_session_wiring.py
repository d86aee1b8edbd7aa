"""Tests for the session wire guard."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

from switchboard.ui.domain.session_wiring import (
    SessionOpenResult,
    SessionWireGuard,
    WireState,
    wire_key,
)
from switchboard.workspace.tab_model import Tab, TabKind


class ControlledSessionService:
    """Session service whose calls stay pending until released."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str | None]] = []
        self.release = asyncio.Event()
        self.result: SessionOpenResult | None = SessionOpenResult(session_ref="sess-1")
        self.error: Exception | None = None

    async def open_session(self, tab_id: str, tab: Tab) -> SessionOpenResult | None:
        self.calls.append((tab_id, tab.project_path))
        await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.result


def _conversation(tab_id: str = "t1", project_path: str | None = "/repo") -> Tab:
    return Tab(
        id=tab_id,
        kind=TabKind.CONVERSATION,
        title="New Chat",
        order=0,
        project_path=project_path,
    )


def test_wire_key_format() -> None:
    assert wire_key("t1", "/repo") == "t1::/repo"


def test_is_wireable() -> None:
    assert SessionWireGuard.is_wireable(_conversation())
    assert not SessionWireGuard.is_wireable(_conversation(project_path=None))
    file_tab = Tab(id="f", kind=TabKind.FILE, title="a", order=0, project_path="/repo")
    assert not SessionWireGuard.is_wireable(file_tab)


def test_without_running_loop_wiring_is_skipped() -> None:
    service = ControlledSessionService()
    guard = SessionWireGuard(service)
    assert guard.ensure_wired(_conversation()) is None
    assert service.calls == []


class TestDeduplication:
    @pytest.mark.asyncio
    async def test_rapid_activations_issue_one_call(self) -> None:
        service = ControlledSessionService()
        guard = SessionWireGuard(service)
        tab = _conversation()

        tasks = [guard.ensure_wired(tab) for _ in range(5)]
        await asyncio.sleep(0)

        assert len({id(task) for task in tasks}) == 1
        assert guard.state("t1", "/repo") is WireState.WIRING

        service.release.set()
        await guard.wait_idle()

        assert service.calls == [("t1", "/repo")]
        assert guard.is_wired("t1", "/repo")
        assert guard.in_flight_keys == frozenset()
        assert guard.ensure_wired(tab) is None
        assert len(service.calls) == 1

    @pytest.mark.asyncio
    async def test_distinct_projects_are_distinct_keys(self) -> None:
        service = ControlledSessionService()
        service.release.set()
        guard = SessionWireGuard(service)

        await guard.wire(_conversation(project_path="/a"))
        await guard.wire(_conversation(project_path="/b"))

        assert guard.wired_keys == frozenset({"t1::/a", "t1::/b"})

    @pytest.mark.asyncio
    async def test_wire_joins_running_attempt(self) -> None:
        service = ControlledSessionService()
        guard = SessionWireGuard(service)
        tab = _conversation()

        guard.ensure_wired(tab)
        waiter = asyncio.ensure_future(guard.wire(tab))
        await asyncio.sleep(0)
        service.release.set()

        assert await waiter is True
        assert len(service.calls) == 1


class TestFailures:
    @pytest.mark.asyncio
    async def test_exception_is_swallowed_and_retry_allowed(self) -> None:
        service = ControlledSessionService()
        service.error = RuntimeError("service down")
        service.release.set()
        guard = SessionWireGuard(service)
        tab = _conversation()

        assert await guard.wire(tab) is False
        assert guard.state("t1", "/repo") is WireState.UNWIRED
        assert guard.in_flight_keys == frozenset()

        service.error = None
        assert await guard.wire(tab) is True
        assert len(service.calls) == 2

    @pytest.mark.asyncio
    async def test_refused_result_counts_as_failure(self) -> None:
        service = ControlledSessionService()
        service.result = SessionOpenResult.failure("no such session")
        service.release.set()
        guard = SessionWireGuard(service)

        assert await guard.wire(_conversation()) is False
        assert not guard.is_wired("t1", "/repo")

    @pytest.mark.asyncio
    async def test_none_result_counts_as_success(self) -> None:
        service = ControlledSessionService()
        service.result = None
        service.release.set()
        guard = SessionWireGuard(service)

        assert await guard.wire(_conversation()) is True

    @pytest.mark.asyncio
    async def test_timeout_abandons_attempt(self) -> None:
        service = ControlledSessionService()
        guard = SessionWireGuard(service, timeout=0.01)

        assert await guard.wire(_conversation()) is False
        assert guard.in_flight_keys == frozenset()
        assert guard.state("t1", "/repo") is WireState.UNWIRED

    @pytest.mark.asyncio
    async def test_cancellation_clears_in_flight(self) -> None:
        service = ControlledSessionService()
        guard = SessionWireGuard(service)

        task = guard.ensure_wired(_conversation())
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert guard.in_flight_keys == frozenset()
        assert not guard.is_wired("t1", "/repo")

    @pytest.mark.asyncio
    async def test_cancellation_before_first_step_allows_retry(self) -> None:
        service = ControlledSessionService()
        guard = SessionWireGuard(service)
        tab = _conversation()

        task = guard.ensure_wired(tab)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert guard.in_flight_keys == frozenset()
        assert guard.state("t1", "/repo") is WireState.UNWIRED
        assert service.calls == []

        service.release.set()
        retry = guard.ensure_wired(tab)
        assert retry is not task
        assert await retry is True
        assert service.calls == [("t1", "/repo")]


class TestCallbacks:
    @pytest.mark.asyncio
    async def test_on_wired_receives_tab_and_result(self) -> None:
        service = ControlledSessionService()
        service.release.set()
        callback = MagicMock()
        guard = SessionWireGuard(service, on_wired=callback)
        tab = _conversation()

        await guard.wire(tab)

        callback.assert_called_once_with(tab, SessionOpenResult(session_ref="sess-1"))

    @pytest.mark.asyncio
    async def test_failing_callback_keeps_key_wired(self) -> None:
        service = ControlledSessionService()
        service.release.set()
        guard = SessionWireGuard(service, on_wired=MagicMock(side_effect=ValueError("boom")))

        assert await guard.wire(_conversation()) is True
        assert guard.is_wired("t1", "/repo")

    @pytest.mark.asyncio
    async def test_callback_can_be_replaced(self) -> None:
        service = ControlledSessionService()
        service.release.set()
        first = MagicMock()
        second = MagicMock()
        guard = SessionWireGuard(service, on_wired=first)
        guard.set_wired_callback(second)

        await guard.wire(_conversation())

        first.assert_not_called()
        second.assert_called_once()
