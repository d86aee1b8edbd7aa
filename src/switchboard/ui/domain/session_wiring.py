"""Session wiring domain service.

Eagerly binds session-bearing tabs to their backing session. Each
(tab, project) key moves through ``unwired -> wiring -> wired``; a failed
attempt falls back to ``unwired`` so a later activation can retry, and the
session is expected to initialize lazily on first real use in the meantime.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import TYPE_CHECKING, Callable, Dict, Protocol, Set

if TYPE_CHECKING:  # pragma: no cover
    from ...workspace.tab_model import Tab

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SessionOpenResult:
    """Outcome reported by a :class:`SessionService`."""

    ok: bool = True
    session_ref: str | None = None
    error: str | None = None

    @classmethod
    def failure(cls, error: str) -> "SessionOpenResult":
        return cls(ok=False, error=error)


class SessionService(Protocol):
    """External service that opens (or creates) the session behind a tab.

    Tabs that already carry a ``session_ref`` should have that session
    reopened; otherwise a session is created for ``tab.project_path``. The call
    must be safe to retry with the same arguments.
    """

    async def open_session(self, tab_id: str, tab: Tab) -> SessionOpenResult | None:  # pragma: no cover - protocol
        ...


class WireState(str, Enum):
    """Wiring state of a (tab, project) key."""

    UNWIRED = "unwired"
    WIRING = "wiring"
    WIRED = "wired"


WiredCallback = Callable[["Tab", SessionOpenResult], None]


def wire_key(tab_id: str, project_path: str | None) -> str:
    """Return the composite key identifying a tab bound to a project."""

    return f"{tab_id}::{project_path}"


class SessionWireGuard:
    """Ensures at most one outstanding wire attempt per (tab, project) key.

    The in-flight check and the in-flight mark happen in the same synchronous
    step in :meth:`ensure_wired`, before control returns to the event loop.
    Attempts are never cancelled when the user switches away; a late success
    simply records the key as wired.
    """

    def __init__(
        self,
        service: SessionService,
        *,
        timeout: float | None = None,
        on_wired: WiredCallback | None = None,
    ) -> None:
        """Initialize the guard.

        Args:
            service: The session service to call.
            timeout: Seconds before an attempt is abandoned; None or <= 0 disables.
            on_wired: Invoked after a successful attempt with the tab and result.
        """
        self._service = service
        self._timeout = timeout if timeout and timeout > 0 else None
        self._on_wired = on_wired
        self._wired: Set[str] = set()
        self._in_flight: Dict[str, asyncio.Task[bool]] = {}

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @staticmethod
    def is_wireable(tab: Tab) -> bool:
        """Return True for session-bearing tabs bound to a project."""
        return tab.kind.session_bearing and bool(tab.project_path)

    def state(self, tab_id: str, project_path: str | None) -> WireState:
        key = wire_key(tab_id, project_path)
        if key in self._wired:
            return WireState.WIRED
        if key in self._in_flight:
            return WireState.WIRING
        return WireState.UNWIRED

    def is_wired(self, tab_id: str, project_path: str | None) -> bool:
        return wire_key(tab_id, project_path) in self._wired

    def set_wired_callback(self, callback: WiredCallback | None) -> None:
        """Replace the callback invoked after each successful attempt."""
        self._on_wired = callback

    @property
    def wired_keys(self) -> frozenset[str]:
        return frozenset(self._wired)

    @property
    def in_flight_keys(self) -> frozenset[str]:
        return frozenset(self._in_flight)

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def ensure_wired(self, tab: Tab) -> asyncio.Task[bool] | None:
        """Start a background wire attempt for ``tab`` unless one is pointless.

        Returns the attempt's task, the already running task for the same key,
        or None when the tab is not wireable, already wired, or no event loop
        is running.
        """
        if not self.is_wireable(tab):
            return None
        key = wire_key(tab.id, tab.project_path)
        if key in self._wired:
            return None
        pending = self._in_flight.get(key)
        if pending is not None and not pending.done():
            LOGGER.debug("SessionWireGuard: %s already wiring", key)
            return pending
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            LOGGER.debug("SessionWireGuard: no running loop, %s left to lazy init", key)
            return None
        task = loop.create_task(self._attempt(key, tab))
        self._in_flight[key] = task
        # Runs even when the task is cancelled before its coroutine starts
        task.add_done_callback(partial(self._settle, key))
        return task

    async def wire(self, tab: Tab) -> bool:
        """Wire ``tab`` and wait for the outcome.

        Joins the running attempt for the same key instead of starting another.

        Returns:
            True if the key is wired afterwards.
        """
        if not self.is_wireable(tab):
            return False
        task = self.ensure_wired(tab)
        if task is None:
            return self.is_wired(tab.id, tab.project_path)
        return await asyncio.shield(task)

    async def wait_idle(self) -> None:
        """Wait until every outstanding attempt has settled."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight.values()), return_exceptions=True)

    def _settle(self, key: str, task: asyncio.Task[bool]) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if task.cancelled():
            LOGGER.debug("SessionWireGuard: wiring cancelled for %s", key)

    async def _attempt(self, key: str, tab: Tab) -> bool:
        try:
            result = await self._open(tab)
        except Exception as exc:
            LOGGER.debug("SessionWireGuard: eager wiring failed for %s: %s", key, exc)
            return False
        if result is None:
            result = SessionOpenResult()
        if not result.ok:
            LOGGER.debug("SessionWireGuard: service refused %s: %s", key, result.error)
            return False
        self._wired.add(key)
        LOGGER.debug("SessionWireGuard: wired %s (session=%s)", key, result.session_ref)
        if self._on_wired is not None:
            try:
                self._on_wired(tab, result)
            except Exception:
                LOGGER.exception("SessionWireGuard: on_wired callback failed for %s", key)
        return True

    async def _open(self, tab: Tab) -> SessionOpenResult | None:
        call = self._service.open_session(tab.id, tab)
        if self._timeout is None:
            return await call
        return await asyncio.wait_for(call, self._timeout)


__all__ = [
    "SessionOpenResult",
    "SessionService",
    "SessionWireGuard",
    "WireState",
    "wire_key",
]
