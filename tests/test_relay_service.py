"""
Tests for the relay pipeline composition and outcome mapping.
"""

import asyncio

import httpx
import pytest

from conftest import always_timeout, respond

CLIENT = "10.0.0.1"


class TestOutcomeMapping:
    """Each pipeline stage maps to a fixed response."""

    @pytest.mark.asyncio
    async def test_forwarded_response_is_relayed(self, make_service):
        service, upstream = make_service(respond(200, "hello", content_type="text/html"))

        response = await service.handle(CLIENT, "s3cret", "foo/bar", "a=1&b=2")

        assert response.status_code == 200
        assert response.body == b"hello"
        assert response.media_type == "text/html"
        assert str(upstream.requests[0].url) == "https://example.com/api/foo/bar?a=1&b=2"

    @pytest.mark.asyncio
    async def test_upstream_503_passes_through_once(self, make_service, sleep_recorder):
        service, upstream = make_service(respond(503, "maintenance"))

        response = await service.handle(CLIENT, "s3cret", "x")

        assert (response.status_code, response.body) == (503, b"maintenance")
        assert len(upstream.requests) == 1
        assert sleep_recorder.delays == []

    @pytest.mark.asyncio
    async def test_wrong_key_is_401_without_outbound_call(self, make_service):
        service, upstream = make_service(respond())

        response = await service.handle(CLIENT, "wrong", "x")

        assert (response.status_code, response.body) == (401, b"Unauthorized")
        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_empty_shared_key_fails_closed(self, make_service):
        service, upstream = make_service(respond(), shared_key="")

        for credential in ("", "anything"):
            response = await service.handle(CLIENT, credential, "x")
            assert response.status_code == 401
        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_exhaustion_is_504(self, make_service, sleep_recorder):
        service, upstream = make_service(always_timeout, max_retries=3)

        response = await service.handle(CLIENT, "s3cret", "x")

        assert (response.status_code, response.body) == (504, b"Gateway Timeout via relay")
        assert len(upstream.requests) == 3
        assert sum(sleep_recorder.delays) == pytest.approx(0.25 * (1 + 2))

    @pytest.mark.asyncio
    async def test_unexpected_failure_is_500_without_details(self, make_service):
        def broken(request):
            raise RuntimeError("secret internals")

        service, _ = make_service(broken)

        response = await service.handle(CLIENT, "s3cret", "x")

        assert (response.status_code, response.body) == (500, b"Relay error")

    @pytest.mark.asyncio
    async def test_rate_limit_is_checked_first(self, make_service):
        """The (N+1)th request is 429, whatever its credential."""
        service, upstream = make_service(respond(), points=2)

        assert (await service.handle(CLIENT, "s3cret", "x")).status_code == 200
        assert (await service.handle(CLIENT, "wrong", "x")).status_code == 401

        response = await service.handle(CLIENT, "s3cret", "x")
        assert (response.status_code, response.body) == (429, b"Too Many Requests")
        assert len(upstream.requests) == 1

        assert (await service.handle("10.0.0.2", "s3cret", "x")).status_code == 200


class TestConcurrency:
    """Concurrent requests do not wait on each other."""

    @pytest.mark.asyncio
    async def test_slow_upstream_does_not_block_other_clients(self, make_service):
        release = asyncio.Event()

        async def handler(request):
            if request.url.path.endswith("/slow"):
                await release.wait()
            return httpx.Response(200, text=request.url.path)

        service, _ = make_service(respond())
        service.forwarder.client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

        slow = asyncio.ensure_future(service.handle("10.0.0.1", "s3cret", "slow"))
        fast = await asyncio.wait_for(service.handle("10.0.0.2", "s3cret", "fast"), timeout=1)

        assert fast.body == b"/api/fast"
        assert not slow.done()

        release.set()
        assert (await slow).body == b"/api/slow"

    @pytest.mark.asyncio
    async def test_same_client_never_over_admitted(self, make_service):
        service, upstream = make_service(respond(), points=5)

        responses = await asyncio.gather(*[service.handle(CLIENT, "s3cret", "x") for _ in range(20)])

        statuses = [r.status_code for r in responses]
        assert statuses.count(200) == 5
        assert statuses.count(429) == 15
        assert len(upstream.requests) == 5
