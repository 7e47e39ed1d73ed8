"""Per-link resolution state machine."""

from __future__ import annotations

from typing import Optional

from src.shared.utils.logging import get_logger

from ..contracts import EVENT_DONE, EVENT_ERROR, EVENT_FINISHED, Link, LinkStatus, ProgressEvent, Severity
from ..gateway import Provider, ResolverGateway
from ..routing import Stage, StageRouter
from ..sinks import ProgressSink
from .timer_loop import TimerBypassLoop

LOGGER = get_logger(__name__)

UNRECOGNIZED_MESSAGE = "Unrecognized format or stuck: process ended without final link"


class LinkOrchestrator:
    """Drives one link through fast-path, timer, HBLinks, HubDrive and final stages.

    Stage gates are re-evaluated against the current URL after every
    rewrite, so HBLinks and HubDrive may both fire for one link. HBLinks and
    HubDrive failures end the link immediately; a final-stage failure falls
    through to the generic unrecognized-format error. A closing ``finished``
    event is always emitted, even after an unexpected exception.
    """

    def __init__(
        self,
        gateway: ResolverGateway,
        router: StageRouter,
        timer_loop: Optional[TimerBypassLoop] = None,
    ) -> None:
        self._gateway = gateway
        self._router = router
        self._timer_loop = timer_loop or TimerBypassLoop(gateway, router)

    async def run(self, link: Link, sink: ProgressSink) -> Link:
        async def emit(
            message: str,
            severity: Severity = Severity.INFO,
            *,
            status: Optional[str] = None,
            final_url: Optional[str] = None,
        ) -> None:
            event = ProgressEvent(
                link_id=link.id,
                message=message,
                severity=severity,
                final_url=final_url,
                status=status,
            )
            link.record(event)
            await sink.emit(event)

        try:
            link.status = LinkStatus.PROCESSING
            await emit("Analyzing link...")
            await self._resolve(link, emit)
        except Exception as exc:  # noqa: BLE001 - contained per link
            LOGGER.exception("Critical error while resolving link %s", link.id)
            if not link.is_terminal:
                link.status = LinkStatus.ERROR
                link.error_message = f"Critical error: {exc}"
            await emit(f"Critical error: {exc}", Severity.ERROR)
        finally:
            await emit("Finished", status=EVENT_FINISHED)

        LOGGER.debug("Link %s finished with status=%s", link.id, link.status.value)
        return link

    async def _resolve(self, link: Link, emit) -> None:
        router = self._router

        if router.classify(link.url) is Stage.FAST_PATH_BYPASS:
            await emit("HubCDN detected. Running single-step bypass...")
            result = await self._gateway.resolve(Provider.HUBCDN, link.url)
            if result.ok:
                await self._complete(link, result.value, emit, "Completed: direct link found")
            else:
                await self._fail(link, f"HubCDN error: {result.message}", emit)
            return

        link.url = await self._timer_loop.run(link.url, report=emit)

        if router.matches(Stage.TERMINAL_HBLINKS, link.url):
            await emit("Solving HBLinks...")
            result = await self._gateway.resolve(Provider.HBLINKS, link.url)
            if not result.ok:
                await self._fail(link, f"HBLinks error: {result.message}", emit)
                return
            link.url = result.value
            await emit("HBLinks done", Severity.SUCCESS)

        if router.matches(Stage.TERMINAL_HUBDRIVE, link.url):
            await emit("Solving HubDrive...")
            result = await self._gateway.resolve(Provider.HUBDRIVE, link.url)
            if not result.ok:
                await self._fail(link, f"HubDrive error: {result.message}", emit)
                return
            link.url = result.value
            await emit("HubDrive done", Severity.SUCCESS)
            await emit(f"Link after HubDrive: {link.url}")

        if router.matches(Stage.FINAL_RESOLVE, link.url):
            await emit("Getting direct link...")
            result = await self._gateway.resolve(Provider.HUBCLOUD, link.url)
            if result.ok:
                await self._complete(link, result.value, emit, "Completed")
            else:
                await emit(f"HubCloud error: {result.message}", Severity.ERROR)

        if link.status is not LinkStatus.DONE:
            await self._fail(link, UNRECOGNIZED_MESSAGE, emit)

    async def _complete(self, link: Link, final_url: str, emit, message: str) -> None:
        link.status = LinkStatus.DONE
        link.final_url = final_url
        await emit(message, Severity.SUCCESS, status=EVENT_DONE, final_url=final_url)

    async def _fail(self, link: Link, message: str, emit) -> None:
        link.status = LinkStatus.ERROR
        link.error_message = message
        await emit(message, Severity.ERROR, status=EVENT_ERROR)
