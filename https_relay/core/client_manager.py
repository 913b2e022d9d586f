"""
Upstream Client Manager

This module manages the global httpx client and builds the relay service.
The client is created once per application instance and shared across requests.

Design:
- Singleton: one AsyncClient (one connection pool) per instance
- Initialized on application startup, closed on shutdown
- Lazily created if a request arrives before startup ran (e.g. bare TestClient)
- Redirects are followed by the transport; the relay only sees final responses
"""

import logging
from typing import Optional

import httpx

from https_relay.core.rate_limit import limiter
from https_relay.core.setting import settings
from https_relay.services.forwarder import ForwardingEngine
from https_relay.services.relay_service import RelayService

logger = logging.getLogger(__name__)

# Global client instance (initialized on startup)
_client: Optional[httpx.AsyncClient] = None


def _create_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.request_timeout, connect=settings.connect_timeout),
        follow_redirects=True,
    )


async def initialize_client() -> None:
    """Create the shared upstream client."""
    global _client

    if _client is not None and not _client.is_closed:
        logger.warning("Upstream client already initialized")
        return

    _client = _create_client()
    logger.info(f"Upstream client initialized for {settings.TARGET_BASE}")


async def shutdown_client() -> None:
    """Close the shared upstream client and its pooled connections."""
    global _client

    if _client is not None:
        logger.info("Closing upstream client")
        await _client.aclose()
        _client = None


def get_http_client() -> httpx.AsyncClient:
    global _client

    if _client is None or _client.is_closed:
        _client = _create_client()
    return _client


def get_relay_service() -> RelayService:
    """
    FastAPI dependency returning the relay pipeline for this instance.

    Tests override this dependency to plug in a mock transport.
    """
    forwarder = ForwardingEngine(
        get_http_client(),
        max_retries=settings.MAX_RETRIES,
        request_timeout=settings.request_timeout,
        connect_timeout=settings.connect_timeout,
        backoff_unit=settings.backoff_unit,
        user_agent=settings.USER_AGENT,
    )
    return RelayService(
        limiter=limiter,
        forwarder=forwarder,
        upstream_base=settings.TARGET_BASE,
        shared_key=settings.SHARED_KEY,
    )
