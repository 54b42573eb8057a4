"""Queue store: the persisted, ordered backlog of work items."""

from pressroom.queue.models import TRANSITIONS, Verdict, WorkItem, WorkStatus, can_transition
from pressroom.queue.store import QueueStore

__all__ = [
    "TRANSITIONS",
    "QueueStore",
    "Verdict",
    "WorkItem",
    "WorkStatus",
    "can_transition",
]
