"""
FastAPI Application Entry Point

This module initializes the FastAPI application and configures:
- API routes (health check and relay)
- Middleware (request logging)
- Plain-text 404 handling for every other path or method

Design Decisions:
- Interactive docs and the OpenAPI schema are disabled: the relay exposes
  exactly /health and /relay/..., everything else is "Not found"
- No trailing-slash redirects: /relay/{key} without a tail is a 404
- The upstream client is opened on startup and closed on shutdown
"""

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from https_relay.api import endpoints
from https_relay.core.client_manager import initialize_client, shutdown_client
from https_relay.middleware.logging import add_logging_middleware

NOT_FOUND_BODY = "Not found"

app = FastAPI(
    title="HTTPS Relay",
    description="Relays plaintext GET requests to a single HTTPS upstream",
    version="1.0.0",
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
    redirect_slashes=False,
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> PlainTextResponse:
    """Unknown paths and unsupported methods are both answered with 404."""
    if exc.status_code in (404, 405):
        return PlainTextResponse(NOT_FOUND_BODY, status_code=404)
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code)


add_logging_middleware(app)

app.include_router(endpoints.router, tags=["Relay"])


@app.on_event("startup")
async def startup_event():
    """Initialize the upstream client on startup."""
    await initialize_client()


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown."""
    await shutdown_client()
