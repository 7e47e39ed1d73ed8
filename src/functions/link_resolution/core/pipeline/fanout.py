"""Concurrent fan-out of the orchestrator over a batch of links."""

from __future__ import annotations

import asyncio
from typing import List, Sequence

from src.shared.utils.logging import get_logger

from ..contracts import Link, LinkStatus
from ..sinks import ProgressSink
from .orchestrator import LinkOrchestrator

LOGGER = get_logger(__name__)


class FanOutController:
    """Runs one orchestrator per link concurrently and waits for all of them.

    Links share no state, so no lock is taken between them; per-provider
    call caps live in the gateway. A fault escaping one orchestrator is
    recorded on that link only.
    """

    def __init__(self, orchestrator: LinkOrchestrator) -> None:
        self._orchestrator = orchestrator

    async def resolve_all(self, links: Sequence[Link], sink: ProgressSink) -> List[Link]:
        if not links:
            return []

        LOGGER.info("Resolving %d link(s) concurrently", len(links))
        outcomes = await asyncio.gather(
            *(self._orchestrator.run(link, sink) for link in links),
            return_exceptions=True,
        )

        for link, outcome in zip(links, outcomes):
            if isinstance(outcome, BaseException):
                LOGGER.error("Orchestrator for link %s escaped with %r", link.id, outcome)
                if not link.is_terminal:
                    link.status = LinkStatus.ERROR
                    link.error_message = f"Critical error: {outcome}"

        done = sum(1 for link in links if link.status is LinkStatus.DONE)
        LOGGER.info("Fan-out complete: %d/%d link(s) resolved", done, len(links))
        return list(links)
