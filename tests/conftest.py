"""Shared pytest fixtures."""

from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone
from typing import Callable

import pytest

from switchboard.ui.events import EventBus
from switchboard.workspace.workspace import TabWorkspace


class _SteppingClock:
    """Deterministic clock advancing one second per reading."""

    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def id_factory() -> Callable[[], str]:
    counter = itertools.count(1)
    return lambda: f"t{next(counter)}"


@pytest.fixture
def clock() -> _SteppingClock:
    return _SteppingClock()


@pytest.fixture
def make_workspace(id_factory, clock) -> Callable[..., TabWorkspace]:
    def _factory(**kwargs) -> TabWorkspace:
        kwargs.setdefault("id_factory", id_factory)
        kwargs.setdefault("clock", clock)
        return TabWorkspace(**kwargs)

    return _factory


@pytest.fixture
def workspace(make_workspace) -> TabWorkspace:
    return make_workspace()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()
