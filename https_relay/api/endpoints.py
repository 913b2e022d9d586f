"""
FastAPI Endpoints for the Relay

This module defines the inbound HTTP surface with minimal logic.
Endpoints only handle:
- Extracting the client identity, credential, path tail and raw query
- Watching for client disconnects while the upstream call is in flight
- Delegating to the relay service

All relay logic lives in services, so the pipeline can be tested and
driven without an HTTP server.
"""

import asyncio
import logging
from typing import Awaitable

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, Response

from https_relay.core.client_manager import get_relay_service
from https_relay.core.rate_limit import get_client_identity
from https_relay.core.setting import settings
from https_relay.services.relay_service import RelayResponse, RelayService

logger = logging.getLogger(__name__)

router = APIRouter()

# How often a pending relay checks whether its caller went away
DISCONNECT_POLL_INTERVAL = 0.5

# Non-standard "client closed request" status; nobody reads it
CLIENT_CLOSED_REQUEST = 499


async def run_until_disconnect(request: Request, work: Awaitable[RelayResponse]) -> RelayResponse:
    """
    Await work, cancelling it if the inbound client disconnects first.

    Cancellation reaches the in-flight upstream attempt or backoff sleep,
    so no further retries are made on behalf of a caller that left.
    """
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_INTERVAL)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info(f"Client disconnected, abandoning relay of {request.url.path}")
                task.cancel()
                return RelayResponse.text(CLIENT_CLOSED_REQUEST, "Client Closed Request")
    finally:
        if not task.done():
            task.cancel()


@router.get("/health", response_class=PlainTextResponse, summary="Health check")
async def health_check() -> PlainTextResponse:
    """
    Health check endpoint for monitoring.

    Bypasses rate limiting and authorization.
    """
    return PlainTextResponse("OK", status_code=200)


@router.get("/relay/{credential}/{path_tail:path}", summary="Relay a GET to the upstream")
async def relay(
    credential: str,
    path_tail: str,
    request: Request,
    service: RelayService = Depends(get_relay_service),
) -> Response:
    """
    Relay a GET request to the configured HTTPS upstream.

    Args:
        credential: Shared key segment of the path
        path_tail: Everything after the credential, forwarded as-is
        request: FastAPI Request object (identity and raw query)

    Returns:
        Upstream status and body, or 429/401/504/500 with a fixed body
    """
    identity = get_client_identity(request, settings.TRUST_FORWARDED_FOR)
    raw_query = request.url.query

    result = await run_until_disconnect(
        request,
        service.handle(identity, credential, path_tail, raw_query),
    )

    # Set the header directly: media_type would append a charset to text/* types
    headers = {"Content-Type": result.media_type} if result.media_type else None
    return Response(
        content=result.body,
        status_code=result.status_code,
        headers=headers,
    )
