"""Event bus infrastructure for decoupled workspace communication.

The tab store, the coordinator and any UI surface (tab strip, sidebar,
status bar) talk to each other through these events instead of holding
references to one another.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import (
    Callable,
    Generic,
    TypeVar,
    TYPE_CHECKING,
)
from weakref import WeakMethod

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from typing import DefaultDict

logger = logging.getLogger(__name__)

# Type variable for event types
E = TypeVar("E", bound="Event")

# Handler type: a callable that takes an event and returns None
Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for all events in the system.

    All event classes should inherit from this base class and use
    the @dataclass decorator with slots=True for memory efficiency.

    Example::

        @dataclass(slots=True)
        class TabCreated(Event):
            tab_id: str
            kind: str
            project_path: str | None = None
    """

    pass


# High-frequency event types that should not log each publish
_QUIET_EVENT_TYPES: set[type] = set()


# =============================================================================
# Tab Events
# =============================================================================


@dataclass(slots=True)
class TabCreated(Event):
    """Emitted when a tab enters the workspace.

    Attributes:
        tab_id: The identifier of the new tab.
        kind: The tab kind value (e.g. "conversation", "file").
        project_path: The project the tab belongs to, if any.
        reopened: True when the tab was recreated from the closed-tab history.
    """

    tab_id: str
    kind: str
    project_path: str | None = None
    reopened: bool = False


@dataclass(slots=True)
class TabClosed(Event):
    """Emitted when a tab is closed.

    Attributes:
        tab_id: The identifier of the closed tab.
        kind: The tab kind value.
        project_path: The project the tab belonged to, if any.
    """

    tab_id: str
    kind: str
    project_path: str | None = None


@dataclass(slots=True)
class ActiveTabChanged(Event):
    """Emitted whenever a tab is activated or the active slot empties.

    Re-activating the already active tab emits this event again.

    Attributes:
        tab_id: The newly active tab, or None when no tabs remain.
        kind: The kind value of the active tab, or None.
        project_path: The project of the active tab, if any.
    """

    tab_id: str | None
    kind: str | None = None
    project_path: str | None = None


@dataclass(slots=True)
class WorkspaceChanged(Event):
    """Emitted after every registry mutation.

    Persistence layers subscribe to this event to snapshot the workspace.

    Attributes:
        reason: Short mutation name ("created", "closed", "moved", ...).
        tab_id: The tab the mutation concerned, if any.
    """

    reason: str
    tab_id: str | None = None


_QUIET_EVENT_TYPES.add(WorkspaceChanged)


@dataclass(slots=True)
class WorkspaceRestored(Event):
    """Emitted when a workspace is restored from saved state.

    Attributes:
        tab_count: The number of tabs that were restored.
        active_tab_id: The active tab after restore, or None.
    """

    tab_count: int
    active_tab_id: str | None


@dataclass(slots=True)
class WorkspaceSaveFailed(Event):
    """Emitted when the workspace snapshot could not be written to disk.

    Attributes:
        error: The error reported by the settings store.
    """

    error: str


# =============================================================================
# Project & Session Events
# =============================================================================


@dataclass(slots=True)
class CurrentProjectChanged(Event):
    """Emitted when the globally tracked current project changes.

    Attributes:
        project_path: The new current project, or None when cleared.
    """

    project_path: str | None


@dataclass(slots=True)
class SessionWired(Event):
    """Emitted when a tab has been bound to its backing session.

    Attributes:
        tab_id: The wired tab.
        project_path: The project the session belongs to.
        session_ref: The session reference reported by the service, if any.
    """

    tab_id: str
    project_path: str
    session_ref: str | None = None


@dataclass(slots=True)
class SessionListRefreshRequested(Event):
    """Emitted when session listings for the given projects are stale.

    Attributes:
        project_paths: Distinct project paths of the open tabs.
    """

    project_paths: tuple[str, ...]


class EventBus(Generic[E]):
    """Typed publish/subscribe bus shared by the workspace components.

    Handlers run synchronously, in subscription order, only for events whose
    type matches exactly. Bound methods are held through :class:`WeakMethod`
    so a subscriber that goes away stops receiving events without having to
    unsubscribe; plain functions and lambdas are held strongly.

    Example::

        bus = EventBus()
        bus.subscribe(TabClosed, lambda event: print(event.tab_id))
        bus.publish(TabClosed(tab_id="t1", kind="file", project_path="/repo"))

    The bus is not thread-safe; use it from the thread running the event loop.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: DefaultDict[type[Event], list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Register ``handler`` for ``event_type``.

        Subscribing the same handler twice delivers every event to it twice.
        """
        self._handlers[event_type].append(_HandlerRef.create(handler))
        logger.debug("Subscribed %s to %s", _handler_name(handler), event_type.__name__)

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove the first registration of ``handler``; unknown handlers are ignored."""
        handlers = self._handlers.get(event_type)
        if not handlers:
            return
        for index, handler_ref in enumerate(handlers):
            if handler_ref.matches(handler):
                del handlers[index]
                logger.debug(
                    "Unsubscribed %s from %s", _handler_name(handler), event_type.__name__
                )
                return

    def publish(self, event: E) -> None:
        """Deliver ``event`` to every live handler of its type.

        A handler that raises is logged and skipped; the remaining handlers
        still run.
        """
        event_type = type(event)
        quiet = event_type in _QUIET_EVENT_TYPES
        handlers = self._handlers.get(event_type)
        if not handlers:
            if not quiet:
                logger.debug("No handlers for %s", event_type.__name__)
            return
        if not quiet:
            logger.debug("Publishing %s to %d handler(s)", event_type.__name__, len(handlers))

        dead: list[_HandlerRef] = []
        # Handlers may (un)subscribe while being invoked
        for handler_ref in tuple(handlers):
            handler = handler_ref.resolve()
            if handler is None:
                dead.append(handler_ref)
                continue
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s raised exception for %s",
                    _handler_name(handler),
                    event_type.__name__,
                )
        for handler_ref in dead:
            if handler_ref in handlers:
                handlers.remove(handler_ref)

    def clear(self) -> None:
        """Drop every registration."""
        self._handlers.clear()

    def handler_count(self, event_type: type[E] | None = None) -> int:
        """Return the registrations for ``event_type``, or across all types."""
        if event_type is not None:
            return len(self._handlers.get(event_type, ()))
        return sum(len(handlers) for handlers in self._handlers.values())


class _HandlerRef:
    """A handler held weakly (bound methods) or strongly (everything else)."""

    __slots__ = ("_ref", "_weak")

    def __init__(self, target: WeakMethod | Handler, weak: bool) -> None:
        self._ref = target
        self._weak = weak

    @classmethod
    def create(cls, handler: Handler) -> _HandlerRef:
        if _is_bound_method(handler):
            try:
                return cls(WeakMethod(handler), weak=True)
            except TypeError:
                pass
        return cls(handler, weak=False)

    def resolve(self) -> Handler | None:
        """Return the handler, or None once its owner has been collected."""
        if self._weak:
            return self._ref()  # type: ignore[operator]
        return self._ref  # type: ignore[return-value]

    def matches(self, handler: Handler) -> bool:
        resolved = self.resolve()
        return resolved is not None and resolved == handler


def _is_bound_method(handler: Handler) -> bool:
    return hasattr(handler, "__self__") and hasattr(handler, "__func__")


def _handler_name(handler: Handler) -> str:
    if _is_bound_method(handler):
        return f"{type(handler.__self__).__name__}.{handler.__func__.__name__}"
    return getattr(handler, "__name__", None) or repr(handler)


__all__ = [
    # Core infrastructure
    "Event",
    "EventBus",
    "Handler",
    # Tab events
    "TabCreated",
    "TabClosed",
    "ActiveTabChanged",
    "WorkspaceChanged",
    "WorkspaceRestored",
    "WorkspaceSaveFailed",
    # Project & session events
    "CurrentProjectChanged",
    "SessionWired",
    "SessionListRefreshRequested",
]
