"""
Shared fixtures for relay tests.

The upstream is an httpx.MockTransport; backoff delays are recorded
instead of slept so retry tests run instantly.
"""

from typing import Callable, List

import httpx
import pytest

from https_relay.core.rate_limit import RateLimiter
from https_relay.services.forwarder import ForwardingEngine
from https_relay.services.relay_service import RelayService

UPSTREAM_BASE = "https://example.com/api"
SHARED_KEY = "s3cret"


class RecordingSleep:
    """Stand-in for asyncio.sleep that only remembers the requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class Upstream:
    """Mock upstream recording every request it receives."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.handler = handler
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def always_timeout(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectTimeout("timed out", request=request)


def respond(status_code: int = 200, text: str = "ok", content_type: str = "text/plain"):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, text=text, headers={"Content-Type": content_type})
    return handler


@pytest.fixture
def sleep_recorder() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_service(sleep_recorder):
    """
    Build a RelayService wired to a mock upstream.

    Returns a factory producing (service, upstream) pairs.
    """
    def _make(
        handler,
        max_retries: int = 3,
        shared_key: str = SHARED_KEY,
        points: int = 60,
        duration: int = 60,
    ):
        upstream = Upstream(handler)
        forwarder = ForwardingEngine(
            upstream.client(),
            max_retries=max_retries,
            backoff_unit=0.25,
            sleep=sleep_recorder,
        )
        service = RelayService(
            limiter=RateLimiter(points=points, duration=duration),
            forwarder=forwarder,
            upstream_base=UPSTREAM_BASE,
            shared_key=shared_key,
        )
        return service, upstream

    return _make
