"""Link resolution orchestration service.

Both delivery modes share one pipeline and differ only in the progress sink:

* streaming: events are pushed to a queue and yielded as they happen;
* persisted: events are accumulated in memory and only the final per-link
  results are written back to the task row once the fan-out completes.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, List, Mapping, Optional, Sequence, Tuple

from src.shared.utils.logging import get_logger

from .config import ResolverConfig
from .contracts import (
    EVENT_ERROR,
    EVENT_FINISHED,
    Link,
    LinkStatus,
    ProgressEvent,
    Severity,
    Task,
    TaskStatus,
)
from .db import DEFAULT_LIST_LIMIT, TaskStore, new_task_id
from .extraction import ExtractionResult, HttpPageExtractor, PageExtractor
from .gateway import NativeResolver, Provider, ResolverGateway
from .pipeline import FanOutController, LinkOrchestrator, TimerBypassLoop
from .routing import StageRouter
from .sinks import AccumulatingProgressSink, ProgressSink, QueueProgressSink

_STREAM_CLOSED = object()


class LinkResolutionService:
    """Entry point for streaming and persisted link resolution runs."""

    def __init__(
        self,
        config: Optional[ResolverConfig] = None,
        *,
        task_store: Optional[TaskStore] = None,
        extractor: Optional[PageExtractor] = None,
        native_resolvers: Optional[Mapping[Provider, NativeResolver]] = None,
        gateway_factory: Optional[Callable[[], ResolverGateway]] = None,
    ) -> None:
        self._logger = get_logger(__name__)
        self._config = config or ResolverConfig.from_env()
        self._router = StageRouter(self._config)
        self._task_store = task_store
        self._extractor = extractor or HttpPageExtractor(self._config)
        self._gateway_factory = gateway_factory or (
            lambda: ResolverGateway(self._config, native_resolvers=native_resolvers)
        )

    @property
    def config(self) -> ResolverConfig:
        return self._config

    @property
    def task_store(self) -> TaskStore:
        if self._task_store is None:
            self._task_store = TaskStore()
        return self._task_store

    @asynccontextmanager
    async def _fanout(self) -> AsyncIterator[FanOutController]:
        # One gateway (and HTTP client) per run; each run owns its event loop.
        async with self._gateway_factory() as gateway:
            timer_loop = TimerBypassLoop(gateway, self._router, max_hops=self._config.max_timer_hops)
            yield FanOutController(LinkOrchestrator(gateway, self._router, timer_loop))

    async def resolve_links(self, links: Sequence[Link], sink: ProgressSink) -> List[Link]:
        """Resolve every link, reporting progress to ``sink``."""
        async with self._fanout() as fanout:
            return await fanout.resolve_all(links, sink)

    async def stream(self, links: Sequence[Link]) -> AsyncIterator[ProgressEvent]:
        """Yield progress events as they are produced, until all links finish."""

        queue: asyncio.Queue[object] = asyncio.Queue()

        async def _run() -> None:
            sink = QueueProgressSink(queue)
            try:
                await self.resolve_links(links, sink)
            except Exception as exc:  # noqa: BLE001 - reported per link on the stream
                self._logger.exception("Streaming run failed before every link finished")
                await self._close_unfinished(links, sink, exc)
            finally:
                queue.put_nowait(_STREAM_CLOSED)

        runner = asyncio.create_task(_run())
        try:
            while True:
                item = await queue.get()
                if item is _STREAM_CLOSED:
                    break
                yield item
        finally:
            await runner

    async def create_task(self, source_url: str) -> Tuple[Task, List[Link]]:
        """Extract links from ``source_url`` and persist a new processing task.

        Returns the stored task and the links still to be resolved. The list
        is empty when extraction failed or found nothing, in which case the
        task has already been marked failed.
        """

        extraction = await self._extract(source_url)
        links: List[Link] = []
        if extraction.ok:
            links = [
                Link(id=str(index), url=candidate.link, name=candidate.name)
                for index, candidate in enumerate(extraction.links, start=1)
            ]

        task = Task(
            id=new_task_id(),
            source_url=source_url,
            metadata=extraction.metadata if extraction.ok else None,
            links=[link.placeholder_record() for link in links],
        )
        task = await asyncio.to_thread(self.task_store.create, task)

        if not extraction.ok:
            error = extraction.message or "Extraction failed"
        elif not links:
            error = "No links found on page"
        else:
            return task, links

        self._logger.warning("Task %s failed before resolution: %s", task.id, error)
        task = await asyncio.to_thread(
            self.task_store.update, task.id, status=TaskStatus.FAILED, error=error
        )
        return task, []

    async def resolve_task(self, task_id: str, links: Sequence[Link]) -> Task:
        """Resolve a task's links and write the final results in one update."""

        sink = AccumulatingProgressSink()
        try:
            resolved = await self.resolve_links(links, sink)
            unfinished = [link.id for link in resolved if not sink.finished(link.id)]
            if unfinished:
                raise RuntimeError(f"Link(s) ended without a finished event: {', '.join(unfinished)}")
            self._logger.info(
                "Task %s resolved %d link(s) with %d progress event(s)", task_id, len(resolved), len(sink)
            )
            return await asyncio.to_thread(
                self.task_store.update,
                task_id,
                status=TaskStatus.COMPLETED,
                links=[link.to_record() for link in resolved],
            )
        except Exception as exc:  # noqa: BLE001 - run-level fault marks the task failed
            self._logger.exception("Resolution run failed for task %s", task_id)
            return await asyncio.to_thread(
                self.task_store.update, task_id, status=TaskStatus.FAILED, error=str(exc)
            )

    async def run_task(self, source_url: str) -> Task:
        """Create a task and resolve it in the foreground."""

        task, links = await self.create_task(source_url)
        if not links:
            return task
        return await self.resolve_task(task.id, links)

    async def list_tasks(self, limit: int = DEFAULT_LIST_LIMIT) -> List[Task]:
        return await asyncio.to_thread(self.task_store.list_recent, limit)

    async def _close_unfinished(self, links: Sequence[Link], sink: ProgressSink, exc: Exception) -> None:
        """Fail and close every link a run-level fault left without a ``finished`` event."""
        message = f"Critical error: {exc}"
        for link in links:
            if link.log and link.log[-1].is_finished:
                continue
            if not link.is_terminal:
                link.status = LinkStatus.ERROR
                link.error_message = message
            for event in (
                ProgressEvent(link_id=link.id, message=message, severity=Severity.ERROR, status=EVENT_ERROR),
                ProgressEvent(link_id=link.id, message="Finished", status=EVENT_FINISHED),
            ):
                link.record(event)
                await sink.emit(event)

    async def _extract(self, source_url: str) -> ExtractionResult:
        try:
            return await self._extractor.extract(source_url)
        except Exception as exc:  # noqa: BLE001 - any extractor fault fails the task
            self._logger.exception("Extraction raised for %s", source_url)
            return ExtractionResult(status="error", message=str(exc) or "Extraction failed")
