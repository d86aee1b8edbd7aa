"""UI-facing layers of the workspace shell: events, domain stores and coordination."""

from .bootstrap import WorkspaceRuntime, create_runtime
from .events import EventBus

__all__ = [
    # Bootstrap
    "WorkspaceRuntime",
    "create_runtime",
    # Event Bus
    "EventBus",
]
