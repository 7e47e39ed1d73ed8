import asyncio

import httpx
import pytest

from src.functions.link_resolution.core.config import ResolverConfig
from src.functions.link_resolution.core.gateway import (
    GatewayResult,
    Provider,
    ProviderLimiter,
    ResolverGateway,
    normalise_response,
)

TIMER_BASE = "https://timer.test/solve"


def _config(**overrides):
    return ResolverConfig(timer_api_url=TIMER_BASE, **overrides)


def _resolve_http(handler, provider=Provider.TIMER, url="https://gadgetsweb.xyz/?id=1"):
    async def _run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            async with ResolverGateway(_config(), client=client) as gateway:
                return await gateway.resolve(provider, url)

    return asyncio.run(_run())


def test_endpoint_percent_encodes_target_url():
    gateway = ResolverGateway(_config())

    endpoint = gateway.endpoint_for(Provider.TIMER, "https://a.example/p?x=1&y=two words")

    assert endpoint == (
        "https://timer.test/solve?url=https%3A%2F%2Fa.example%2Fp%3Fx%3D1%26y%3Dtwo%20words"
    )


def test_http_success_returns_extracted_link():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"status": "success", "extracted_link": "https://hblinks.pro/1"})

    result = _resolve_http(handler)

    assert result.ok
    assert result.value == "https://hblinks.pro/1"
    assert seen[0].url.params["url"] == "https://gadgetsweb.xyz/?id=1"
    assert seen[0].method == "GET"


def test_http_failure_status_carries_provider_message():
    result = _resolve_http(
        lambda request: httpx.Response(200, json={"status": "error", "message": "Link expired"})
    )

    assert not result.ok
    assert result.message == "Link expired"


def test_success_without_link_is_an_error():
    result = _resolve_http(lambda request: httpx.Response(200, json={"status": "success"}))

    assert not result.ok
    assert "without a link" in result.message


def test_non_2xx_without_json_reports_status_code():
    result = _resolve_http(lambda request: httpx.Response(502, text="Bad gateway"))

    assert result.status == "error"
    assert result.message == "timer resolver returned HTTP 502"


def test_non_2xx_with_json_prefers_body_message():
    result = _resolve_http(
        lambda request: httpx.Response(429, json={"status": "error", "message": "Rate limited"}),
        provider=Provider.HBLINKS,
        url="https://hblinks.pro/2",
    )

    assert result.message == "Rate limited"


def test_invalid_json_body_is_an_error():
    result = _resolve_http(lambda request: httpx.Response(200, text="<html>oops</html>"))

    assert result.message == "timer resolver returned invalid JSON"


def test_transport_errors_become_error_results():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    result = _resolve_http(handler)

    assert not result.ok
    assert result.message.startswith("timer resolver request failed")


def test_timeouts_become_error_results():
    def handler(request):
        raise httpx.ReadTimeout("slow upstream", request=request)

    result = _resolve_http(handler)

    assert result.message == "timer resolver timed out after 30s"


def test_native_resolver_takes_precedence_over_http():
    calls = []

    async def native(url):
        calls.append(url)
        return {"status": "success", "final_link": "https://cdn.example/file.mkv"}

    def handler(request):
        raise AssertionError("HTTP should not be used")

    async def _run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            gateway = ResolverGateway(_config(), native_resolvers={Provider.HUBCDN: native}, client=client)
            async with gateway:
                return await gateway.resolve(Provider.HUBCDN, "https://hubcdn.fans/file/1")

    result = asyncio.run(_run())

    assert result == GatewayResult.success("https://cdn.example/file.mkv")
    assert calls == ["https://hubcdn.fans/file/1"]


def test_native_resolver_exception_becomes_error_result():
    async def native(url):
        raise RuntimeError("cloudflare challenge")

    async def _run():
        async with ResolverGateway(_config(), native_resolvers={Provider.HBLINKS: native}) as gateway:
            return await gateway.resolve(Provider.HBLINKS, "https://hblinks.pro/1")

    result = asyncio.run(_run())

    assert result.message == "cloudflare challenge"


def test_native_resolver_is_bounded_by_timeout():
    async def native(url):
        await asyncio.sleep(5)
        return {"status": "success", "link": "https://never.example"}

    async def _run():
        gateway = ResolverGateway(
            _config(request_timeout_seconds=1.0), native_resolvers={Provider.HUBCLOUD: native}
        )
        async with gateway:
            return await gateway.resolve(Provider.HUBCLOUD, "https://hubcloud.one/drive/1")

    result = asyncio.run(_run())

    assert result.message == "hubcloud resolver timed out after 1s"


def test_http_call_requires_entered_gateway():
    gateway = ResolverGateway(_config())

    with pytest.raises(RuntimeError):
        asyncio.run(gateway.resolve(Provider.TIMER, "https://gadgetsweb.xyz/?id=1"))


def test_normalise_response_falls_back_across_value_keys():
    assert normalise_response(Provider.TIMER, {"status": "success", "link": " https://x.example/1 "}) == (
        GatewayResult.success("https://x.example/1")
    )
    assert normalise_response(Provider.HUBCDN, ["not", "a", "mapping"]).message == (
        "Malformed response from hubcdn resolver"
    )
    assert normalise_response(Provider.HBLINKS, {"status": "failed"}).message == (
        "hblinks resolver returned failure status"
    )


def test_limiter_caps_concurrent_calls_per_provider():
    in_flight = {"current": 0, "peak": 0}

    async def native(url):
        in_flight["current"] += 1
        in_flight["peak"] = max(in_flight["peak"], in_flight["current"])
        await asyncio.sleep(0.01)
        in_flight["current"] -= 1
        return {"status": "success", "link": url + "/next"}

    async def _run():
        gateway = ResolverGateway(
            _config(max_concurrent_per_provider=2), native_resolvers={Provider.HBLINKS: native}
        )
        async with gateway:
            return await asyncio.gather(
                *(gateway.resolve(Provider.HBLINKS, f"https://hblinks.pro/{index}") for index in range(6))
            )

    results = asyncio.run(_run())

    assert all(result.ok for result in results)
    assert in_flight["peak"] == 2


def test_limiter_disabled_by_default():
    limiter = ProviderLimiter()

    async def _run():
        async with limiter.slot(Provider.TIMER):
            return limiter.snapshot()

    assert not limiter.enabled
    assert asyncio.run(_run()) == {}


def test_limiter_tracks_in_flight_calls():
    limiter = ProviderLimiter(max_concurrent_per_provider=1)

    async def _run():
        async with limiter.slot(Provider.TIMER):
            inside = limiter.snapshot()
        return inside, limiter.snapshot()

    inside, after = asyncio.run(_run())

    assert inside == {"timer": 1}
    assert after == {"timer": 0}


def test_limiter_rejects_negative_cap():
    with pytest.raises(ValueError):
        ProviderLimiter(max_concurrent_per_provider=-1)


def test_each_gateway_owns_its_limiter():
    config = _config(max_concurrent_per_provider=1)

    first, second = ResolverGateway(config), ResolverGateway(config)

    assert first.limiter is not second.limiter
    assert first.limiter.max_concurrent_per_provider == 1
