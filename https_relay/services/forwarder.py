"""
Forwarding Engine

This service performs the upstream call for an authorized relay request.

Design Decisions:
- Uses httpx.AsyncClient so a request waiting on the upstream (or on a
  backoff delay) never blocks other requests
- Any HTTP response, whatever its status, ends the loop and is passed through
- Only transport failures (timeouts, connect/DNS errors, resets) are retried,
  with linear backoff: BACKOFF * attempt between attempts
- Each attempt is bounded as a whole by request_timeout, so an upstream
  trickling its body counts as a timeout rather than holding the attempt open
- Attempts are strictly sequential; cancelling the caller cancels the
  in-flight attempt or sleep and abandons the remaining ones
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Forwarded:
    """The upstream answered; status and body are relayed unmodified."""
    status_code: int
    body: bytes
    content_type: Optional[str] = None


@dataclass(frozen=True)
class Exhausted:
    """Every attempt failed before any response was received."""
    attempts: int
    last_error: Optional[Exception] = None


RelayResult = Union[Forwarded, Exhausted]


class ForwardingEngine:
    """
    Retrying GET forwarder against a single upstream.

    The engine does not own the client; its lifecycle is managed by
    client_manager so connections are pooled across requests.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        max_retries: int = 3,
        request_timeout: float = 10.0,
        connect_timeout: float = 5.0,
        backoff_unit: float = 0.25,
        user_agent: str = "HTTPSRelay/1.0",
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            client: Shared async HTTP client
            max_retries: Total number of attempts (>= 1)
            request_timeout: Per-attempt timeout in seconds
            connect_timeout: Connect phase timeout in seconds
            backoff_unit: Delay unit in seconds; attempt N waits unit * N
            user_agent: Fixed identifying header sent upstream
            sleep: Awaitable delay function (replaced in tests)
        """
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        self.client = client
        self.max_retries = max_retries
        self.request_timeout = request_timeout
        self.timeout = httpx.Timeout(request_timeout, connect=connect_timeout)
        self.backoff_unit = backoff_unit
        self.headers = {"User-Agent": user_agent}
        self._sleep = sleep

    async def forward(self, target_url: str) -> RelayResult:
        """
        Forward a GET to target_url, retrying transport failures.

        Returns:
            Forwarded on the first response received (any status),
            Exhausted once max_retries attempts have failed
        """
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                # httpx timeouts bound each phase; wait_for bounds the whole attempt
                response = await asyncio.wait_for(
                    self.client.get(
                        target_url,
                        headers=self.headers,
                        timeout=self.timeout,
                    ),
                    self.request_timeout,
                )
            except (httpx.TransportError, asyncio.TimeoutError) as e:
                last_error = e
                logger.warning(
                    f"Upstream attempt {attempt}/{self.max_retries} failed: "
                    f"{type(e).__name__}: {e}"
                )
                if attempt < self.max_retries:
                    await self._sleep(self.backoff_unit * attempt)
                continue

            return Forwarded(
                status_code=response.status_code,
                body=response.content,
                content_type=response.headers.get("Content-Type"),
            )

        logger.error(f"Relay failed after {self.max_retries} attempt(s): {last_error!r}")
        return Exhausted(attempts=self.max_retries, last_error=last_error)
