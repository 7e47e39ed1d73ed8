"""Delivery strategies for per-link progress events."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Dict, List, Protocol, runtime_checkable

from ..contracts import ProgressEvent


@runtime_checkable
class ProgressSink(Protocol):
    """Destination for progress events emitted by the orchestrator."""

    async def emit(self, event: ProgressEvent) -> None:
        ...


class QueueProgressSink:
    """Pushes every event onto an asyncio queue for a live consumer.

    The queue is unbounded, so ``emit`` never blocks the orchestrator.
    """

    def __init__(self, queue: "asyncio.Queue[object]") -> None:
        self._queue = queue

    async def emit(self, event: ProgressEvent) -> None:
        self._queue.put_nowait(event)


class AccumulatingProgressSink:
    """Collects events in memory, grouped by link, for a later batch write."""

    def __init__(self) -> None:
        self._events: Dict[str, List[ProgressEvent]] = defaultdict(list)

    async def emit(self, event: ProgressEvent) -> None:
        self._events[event.link_id].append(event)

    def events_for(self, link_id: str) -> List[ProgressEvent]:
        return list(self._events.get(link_id, []))

    def finished(self, link_id: str) -> bool:
        events = self._events.get(link_id)
        return bool(events) and events[-1].is_finished

    def __len__(self) -> int:
        return sum(len(events) for events in self._events.values())


class CompositeProgressSink:
    """Forwards each event to several sinks, in order."""

    def __init__(self, *sinks: ProgressSink) -> None:
        self._sinks = sinks

    async def emit(self, event: ProgressEvent) -> None:
        for sink in self._sinks:
            await sink.emit(event)
