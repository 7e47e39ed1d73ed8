"""Per-provider concurrency caps for outbound resolver calls."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, Hashable, Optional

from src.shared.utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass
class ProviderLimiter:
    """Bounds simultaneous in-flight calls to each external provider.

    One semaphore is created lazily per provider key. A cap of ``None`` or
    ``0`` disables limiting entirely. The semaphores belong to the event loop
    of one run, so each gateway owns its own limiter and the cap bounds calls
    within a single batch, not across concurrent requests.
    """

    max_concurrent_per_provider: Optional[int] = None
    _semaphores: Dict[Hashable, asyncio.Semaphore] = field(init=False, repr=False, default_factory=dict)
    _in_flight: Dict[Hashable, int] = field(init=False, repr=False, default_factory=dict)

    def __post_init__(self) -> None:
        cap = self.max_concurrent_per_provider
        if cap is not None and cap < 0:
            raise ValueError("max_concurrent_per_provider must be non-negative")

    @property
    def enabled(self) -> bool:
        return bool(self.max_concurrent_per_provider)

    @asynccontextmanager
    async def slot(self, provider: Hashable) -> AsyncIterator[None]:
        """Hold one call slot for ``provider`` for the duration of the block."""

        if not self.enabled:
            yield
            return

        semaphore = self._semaphores.get(provider)
        if semaphore is None:
            semaphore = asyncio.Semaphore(self.max_concurrent_per_provider)
            self._semaphores[provider] = semaphore

        if semaphore.locked():
            LOGGER.debug("Provider %s at capacity; waiting for a free slot", provider)

        async with semaphore:
            self._in_flight[provider] = self._in_flight.get(provider, 0) + 1
            try:
                yield
            finally:
                self._in_flight[provider] -= 1

    def snapshot(self) -> Dict[str, int]:
        """Return in-flight call counts per provider."""

        return {str(getattr(key, "value", key)): count for key, count in self._in_flight.items()}
