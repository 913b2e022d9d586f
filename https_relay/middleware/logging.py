"""
Logging Middleware for Request/Response Logging

This middleware logs every inbound HTTP request for observability.
It captures:
- Request method and path (never the query string, which may carry secrets)
- Response status code
- Request processing time
- Client IP address

Design Decisions:
- Plain ASGI middleware, so client disconnects still reach the endpoints
- Logs to standard Python logging, fire-and-forget
- The credential segment of /relay/ paths is masked before logging
"""

import time
import logging
from starlette.datastructures import MutableHeaders
from starlette.requests import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from https_relay.core.rate_limit import get_client_identity
from https_relay.core.setting import settings

logger = logging.getLogger("https_relay")

RELAY_PREFIX = "/relay/"


def mask_credential(path: str) -> str:
    """
    Replace the credential segment of a relay path with '***'.

    >>> mask_credential("/relay/s3cret/foo/bar")
    '/relay/***/foo/bar'
    """
    if not path.startswith(RELAY_PREFIX):
        return path
    _, sep, tail = path[len(RELAY_PREFIX):].partition("/")
    return f"{RELAY_PREFIX}***{sep}{tail}"


class LoggingMiddleware:
    """
    Middleware for logging HTTP requests and responses.

    Plain ASGI rather than BaseHTTPMiddleware: `receive` is handed to the
    app untouched, so endpoints still see http.disconnect when the client
    leaves. Only `send` is wrapped, to read the status and add the timing
    header.
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        client_ip = get_client_identity(request, settings.TRUST_FORWARDED_FOR)

        start_time = time.time()
        status_code = 500

        async def send_with_timing(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                headers = MutableHeaders(scope=message)
                headers.append("X-Process-Time", str(time.time() - start_time))
            await send(message)

        try:
            await self.app(scope, receive, send_with_timing)
        finally:
            process_time = time.time() - start_time

            # Format: METHOD PATH STATUS_CODE PROCESS_TIME_MS CLIENT_IP
            logger.info(
                f"{request.method} {mask_credential(request.url.path)} "
                f"{status_code} {process_time*1000:.2f}ms "
                f"IP:{client_ip}"
            )


def add_logging_middleware(app):
    """
    Add logging middleware to FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_middleware(LoggingMiddleware)
