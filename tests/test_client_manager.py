"""
Tests for the shared upstream client lifecycle and service wiring.
"""

import pytest

from https_relay.core import client_manager
from https_relay.core.rate_limit import limiter
from https_relay.core.setting import settings
from https_relay.services.relay_service import RelayService


@pytest.mark.asyncio
async def test_initialize_and_shutdown():
    await client_manager.shutdown_client()

    await client_manager.initialize_client()
    client = client_manager.get_http_client()
    assert not client.is_closed

    # second initialization keeps the existing client
    await client_manager.initialize_client()
    assert client_manager.get_http_client() is client

    await client_manager.shutdown_client()
    assert client.is_closed


@pytest.mark.asyncio
async def test_get_http_client_is_lazy():
    await client_manager.shutdown_client()

    client = client_manager.get_http_client()
    assert client is client_manager.get_http_client()

    await client_manager.shutdown_client()


def test_relay_service_uses_settings():
    service = client_manager.get_relay_service()

    assert isinstance(service, RelayService)
    assert service.limiter is limiter
    assert service.upstream_base == settings.TARGET_BASE
    assert service.shared_key == settings.SHARED_KEY
    assert service.forwarder.max_retries == settings.MAX_RETRIES
    assert service.forwarder.headers == {"User-Agent": settings.USER_AGENT}
