"""Data contracts for links, progress events, tasks and requests."""

from .link import EVENT_DONE, EVENT_ERROR, EVENT_FINISHED, Link, LinkStatus, ProgressEvent, Severity
from .requests import LinkInput, StreamSolveRequest, TaskCreateRequest
from .task import Task, TaskStatus

__all__ = [
    "EVENT_DONE",
    "EVENT_ERROR",
    "EVENT_FINISHED",
    "Link",
    "LinkStatus",
    "ProgressEvent",
    "Severity",
    "LinkInput",
    "StreamSolveRequest",
    "TaskCreateRequest",
    "Task",
    "TaskStatus",
]
