"""Bounded stack of recently closed tabs used for "reopen closed tab"."""

from __future__ import annotations

from collections import deque
from typing import Iterator

from .tab_model import ClosedTabSnapshot

__all__ = ["ClosedTabHistory", "DEFAULT_HISTORY_CAPACITY"]

DEFAULT_HISTORY_CAPACITY = 10


class ClosedTabHistory:
    """LIFO buffer of :class:`ClosedTabSnapshot` entries.

    Pushing onto a full history silently evicts the oldest snapshot.
    """

    def __init__(self, capacity: int = DEFAULT_HISTORY_CAPACITY) -> None:
        self._capacity = max(1, int(capacity))
        # Most recent entry sits at index 0.
        self._entries: deque[ClosedTabSnapshot] = deque(maxlen=self._capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def push(self, snapshot: ClosedTabSnapshot) -> None:
        self._entries.appendleft(snapshot)

    def pop(self) -> ClosedTabSnapshot | None:
        """Remove and return the most recently closed snapshot, if any."""

        if not self._entries:
            return None
        return self._entries.popleft()

    def peek(self) -> ClosedTabSnapshot | None:
        return self._entries[0] if self._entries else None

    def latest_project(self) -> str | None:
        """Return the project of the most recently closed tab that had one."""

        for snapshot in self._entries:
            if snapshot.project_path:
                return snapshot.project_path
        return None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ClosedTabSnapshot]:
        return iter(tuple(self._entries))
