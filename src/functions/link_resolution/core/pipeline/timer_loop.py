"""Bounded removal of intermediate timer/ad-gate pages."""

from __future__ import annotations

from typing import Awaitable, Callable, Optional

from src.shared.utils.logging import get_logger

from ..contracts import Severity
from ..gateway import Provider, ResolverGateway
from ..routing import StageRouter

LOGGER = get_logger(__name__)

Reporter = Callable[[str, Severity], Awaitable[None]]


class TimerBypassLoop:
    """Strips up to ``max_hops`` timer pages before a terminal domain.

    Failures are absorbed: the first failed call ends the loop and the URL
    from before that call is returned unchanged.
    """

    def __init__(self, gateway: ResolverGateway, router: StageRouter, *, max_hops: int = 3) -> None:
        if max_hops < 1:
            raise ValueError("max_hops must be at least 1")
        self._gateway = gateway
        self._router = router
        self._max_hops = max_hops

    @property
    def max_hops(self) -> int:
        return self._max_hops

    async def run(self, url: str, report: Optional[Reporter] = None) -> str:
        for hop in range(self._max_hops):
            if self._router.is_terminal_domain(url):
                break
            if hop == 0 and not self._router.is_timer_page(url):
                break

            if hop == 0:
                await _report(report, "Timer detected. Processing...", Severity.WARN)
            else:
                await _report(report, f"Bypassing intermediate page: {url}", Severity.WARN)

            await _report(report, "Calling external timer API...", Severity.WARN)
            result = await self._gateway.resolve(Provider.TIMER, url)
            if not result.ok:
                await _report(report, f"Timer error: {result.message}", Severity.ERROR)
                break

            url = result.value
            LOGGER.debug("Timer hop %d resolved to %s", hop + 1, url)
            await _report(report, "Timer bypass done", Severity.SUCCESS)
            await _report(report, f"Link after timer: {url}", Severity.INFO)

        return url


async def _report(report: Optional[Reporter], message: str, severity: Severity) -> None:
    if report is not None:
        await report(message, severity)
