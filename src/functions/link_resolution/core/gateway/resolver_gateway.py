"""Uniform access to native and HTTP bypass resolvers.

Every provider, whether a third-party HTTP bypass service or an injected
native resolver, is reduced to a single :class:`GatewayResult`. Calls are
single-attempt and never raise for provider failures: transport errors,
timeouts, non-2xx responses and malformed bodies all become error results.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple
from urllib.parse import quote

import httpx

from src.shared.utils.logging import get_logger

from ..config import ResolverConfig
from .limits import ProviderLimiter

LOGGER = get_logger(__name__)

# Characters left unescaped by JavaScript's encodeURIComponent.
_URL_SAFE_CHARS = "-_.!~*'()"

_VALUE_KEYS = ("extracted_link", "link", "final_link")


class Provider(str, Enum):
    """External resolvers reachable through the gateway."""
    TIMER = "timer"
    HBLINKS = "hblinks"
    HUBDRIVE = "hubdrive"
    HUBCLOUD = "hubcloud"
    HUBCDN = "hubcdn"


# Response key each provider reports its resulting URL under.
_PREFERRED_KEY: Dict[Provider, str] = {
    Provider.TIMER: "extracted_link",
    Provider.HBLINKS: "link",
    Provider.HUBDRIVE: "link",
    Provider.HUBCLOUD: "link",
    Provider.HUBCDN: "final_link",
}

NativeResolver = Callable[[str], Awaitable[Mapping[str, Any]]]


@dataclass(frozen=True)
class GatewayResult:
    """Normalised outcome of one resolver call."""

    status: str
    value: Optional[str] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "success" and bool(self.value)

    @classmethod
    def success(cls, value: str) -> "GatewayResult":
        return cls(status="success", value=value)

    @classmethod
    def error(cls, message: str) -> "GatewayResult":
        return cls(status="error", message=message)


def normalise_response(provider: Provider, payload: Any) -> GatewayResult:
    """Map a raw resolver response body onto a :class:`GatewayResult`."""

    if not isinstance(payload, Mapping):
        return GatewayResult.error(f"Malformed response from {provider.value} resolver")

    value = _extract_value(provider, payload)
    if payload.get("status") == "success":
        if value:
            return GatewayResult.success(value)
        return GatewayResult.error(f"{provider.value} resolver reported success without a link")

    message = payload.get("message")
    if not isinstance(message, str) or not message.strip():
        message = f"{provider.value} resolver returned failure status"
    return GatewayResult.error(message.strip())


def _extract_value(provider: Provider, payload: Mapping[str, Any]) -> Optional[str]:
    preferred = _PREFERRED_KEY[provider]
    keys: Tuple[str, ...] = (preferred,) + tuple(key for key in _VALUE_KEYS if key != preferred)
    for key in keys:
        candidate = payload.get(key)
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return None


class ResolverGateway:
    """Async context manager that dispatches resolver calls per provider.

    Example:
        >>> async with ResolverGateway(ResolverConfig()) as gateway:
        ...     result = await gateway.resolve(Provider.TIMER, url)
        ...     if result.ok:
        ...         url = result.value
    """

    def __init__(
        self,
        config: ResolverConfig,
        *,
        native_resolvers: Optional[Mapping[Provider, NativeResolver]] = None,
        client: Optional[httpx.AsyncClient] = None,
        limiter: Optional[ProviderLimiter] = None,
    ) -> None:
        self._config = config
        self._native_resolvers: Dict[Provider, NativeResolver] = dict(native_resolvers or {})
        self._client = client
        self._owns_client = client is None
        self._limiter = limiter or ProviderLimiter(config.max_concurrent_per_provider)
        self._base_urls: Dict[Provider, str] = {
            Provider.TIMER: config.timer_api_url,
            Provider.HBLINKS: config.hblinks_api_url,
            Provider.HUBDRIVE: config.hubdrive_api_url,
            Provider.HUBCLOUD: config.hubcloud_api_url,
            Provider.HUBCDN: config.hubcdn_api_url,
        }

    async def __aenter__(self) -> "ResolverGateway":
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": self._config.user_agent},
                timeout=self._config.request_timeout_seconds,
                follow_redirects=True,
            )
            self._owns_client = True
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def limiter(self) -> ProviderLimiter:
        return self._limiter

    def endpoint_for(self, provider: Provider, url: str) -> str:
        """Build ``<base>?url=<percent-encoded url>`` for an HTTP provider."""
        return f"{self._base_urls[provider]}?url={quote(url, safe=_URL_SAFE_CHARS)}"

    async def resolve(self, provider: Provider, url: str) -> GatewayResult:
        """Run one single-attempt call against ``provider`` for ``url``."""

        async with self._limiter.slot(provider):
            native = self._native_resolvers.get(provider)
            if native is not None:
                result = await self._call_native(provider, native, url)
            else:
                result = await self._call_http(provider, url)

        if not result.ok:
            LOGGER.warning("%s resolver failed for %s: %s", provider.value, url, result.message)
        return result

    async def _call_native(
        self,
        provider: Provider,
        resolver: NativeResolver,
        url: str,
    ) -> GatewayResult:
        timeout = self._config.request_timeout_seconds
        try:
            payload = await asyncio.wait_for(resolver(url), timeout=timeout)
        except asyncio.TimeoutError:
            return GatewayResult.error(f"{provider.value} resolver timed out after {timeout:g}s")
        except Exception as exc:  # noqa: BLE001 - native resolvers are third-party code
            return GatewayResult.error(str(exc) or f"{provider.value} resolver raised {type(exc).__name__}")
        return normalise_response(provider, payload)

    async def _call_http(self, provider: Provider, url: str) -> GatewayResult:
        if self._client is None:
            raise RuntimeError("ResolverGateway must be entered with 'async with' before use")

        endpoint = self.endpoint_for(provider, url)
        LOGGER.debug("Calling %s resolver: %s", provider.value, endpoint)
        try:
            response = await self._client.get(endpoint)
        except httpx.TimeoutException:
            return GatewayResult.error(
                f"{provider.value} resolver timed out after {self._config.request_timeout_seconds:g}s"
            )
        except httpx.HTTPError as exc:
            return GatewayResult.error(f"{provider.value} resolver request failed: {exc}")

        try:
            payload = response.json()
        except ValueError:
            if response.is_error:
                return GatewayResult.error(f"{provider.value} resolver returned HTTP {response.status_code}")
            return GatewayResult.error(f"{provider.value} resolver returned invalid JSON")

        if response.is_error:
            message = payload.get("message") if isinstance(payload, Mapping) else None
            return GatewayResult.error(
                message or f"{provider.value} resolver returned HTTP {response.status_code}"
            )

        return normalise_response(provider, payload)
