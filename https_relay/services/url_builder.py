"""
Request Authorizer & URL Builder

Turns an inbound relay path into the upstream target URL, provided the
credential embedded in the path matches the configured shared key.

Design Decisions:
- Pure functions: no I/O, trivially testable
- The path tail and raw query are appended as received (no re-escaping,
  no dot-segment removal); see validators for the security caveat
"""

from dataclasses import dataclass

from https_relay.core.exceptions import UnauthorizedError
from https_relay.core.validators import credentials_match


@dataclass(frozen=True)
class RelayRequest:
    """One inbound relay call, split into its path parts."""
    credential: str
    path_tail: str = ""
    raw_query: str = ""


def build_target_url(upstream_base: str, path_tail: str, raw_query: str = "") -> str:
    """
    Compose the upstream URL.

    >>> build_target_url("https://example.com/api/", "foo/bar", "a=1&b=2")
    'https://example.com/api/foo/bar?a=1&b=2'
    """
    url = f"{upstream_base.rstrip('/')}/{path_tail}"
    if raw_query:
        url = f"{url}?{raw_query}"
    return url


def authorize_and_build(request: RelayRequest, upstream_base: str, shared_key: str) -> str:
    """
    Authorize a relay request and return its upstream target URL.

    Raises:
        UnauthorizedError: If no shared key is configured or the
            credential does not match it
    """
    if not shared_key:
        raise UnauthorizedError("Relay disabled: no shared key configured")
    if not credentials_match(request.credential, shared_key):
        raise UnauthorizedError()
    return build_target_url(upstream_base, request.path_tail, request.raw_query)
