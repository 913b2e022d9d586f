"""
Relay Service

Composes the rate limiter, the authorizer/URL builder and the forwarding
engine for one inbound request, and maps every outcome to a response.

Pipeline:
    rate limit (429) -> authorize + build URL (401) -> forward (504 on
    exhaustion, upstream status otherwise); anything unexpected is a 500.

The service knows nothing about FastAPI, so it can be driven by any
entry point and tested without an HTTP server.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from https_relay.core.exceptions import RateLimitedError, RelayExhaustedError, UnauthorizedError
from https_relay.core.rate_limit import RateLimiter
from https_relay.services.forwarder import Exhausted, ForwardingEngine
from https_relay.services.url_builder import RelayRequest, authorize_and_build

logger = logging.getLogger(__name__)

TOO_MANY_REQUESTS_BODY = "Too Many Requests"
UNAUTHORIZED_BODY = "Unauthorized"
GATEWAY_TIMEOUT_BODY = "Gateway Timeout via relay"
RELAY_ERROR_BODY = "Relay error"

TEXT_PLAIN = "text/plain; charset=utf-8"


@dataclass(frozen=True)
class RelayResponse:
    """Final status and body handed back to the inbound caller."""
    status_code: int
    body: bytes
    media_type: Optional[str] = TEXT_PLAIN

    @classmethod
    def text(cls, status_code: int, body: str) -> "RelayResponse":
        return cls(status_code=status_code, body=body.encode("utf-8"))


class RelayService:
    """
    Per-request relay pipeline.

    Only the limiter's table is shared between requests; everything else
    lives for the duration of a single handle() call.
    """

    def __init__(
        self,
        limiter: RateLimiter,
        forwarder: ForwardingEngine,
        upstream_base: str,
        shared_key: str,
    ):
        self.limiter = limiter
        self.forwarder = forwarder
        self.upstream_base = upstream_base
        self.shared_key = shared_key

    async def handle(
        self,
        identity: str,
        credential: str,
        path_tail: str = "",
        raw_query: str = "",
    ) -> RelayResponse:
        """
        Run the relay pipeline for one inbound request.

        Args:
            identity: Client identity used as rate limiting key
            credential: Credential segment of the inbound path
            path_tail: Remainder of the path after the credential
            raw_query: Inbound query string, without the leading '?'

        Returns:
            RelayResponse; error bodies are fixed strings and never carry
            exception details
        """
        try:
            return await self._relay(identity, RelayRequest(credential, path_tail, raw_query))
        except RateLimitedError:
            logger.info(f"Rate limit exceeded for {identity}")
            return RelayResponse.text(429, TOO_MANY_REQUESTS_BODY)
        except UnauthorizedError as e:
            logger.info(f"Unauthorized relay attempt from {identity}: {e.reason}")
            return RelayResponse.text(401, UNAUTHORIZED_BODY)
        except RelayExhaustedError:
            return RelayResponse.text(504, GATEWAY_TIMEOUT_BODY)
        except Exception:
            logger.exception(f"Unexpected relay failure for {identity}")
            return RelayResponse.text(500, RELAY_ERROR_BODY)

    async def _relay(self, identity: str, request: RelayRequest) -> RelayResponse:
        self.limiter.consume(identity)

        target_url = authorize_and_build(request, self.upstream_base, self.shared_key)

        result = await self.forwarder.forward(target_url)
        if isinstance(result, Exhausted):
            raise RelayExhaustedError(result.attempts, result.last_error)

        return RelayResponse(
            status_code=result.status_code,
            body=result.body,
            media_type=result.content_type,
        )
