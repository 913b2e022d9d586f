"""
Custom Exceptions

This module defines the relay's error taxonomy.

Only transport failures against the upstream are retried; every other
condition ends the request immediately with a fixed response body.
An upstream answering with a non-2xx status is not an error here: it is
passed through as a successful forward.
"""


class RelayError(Exception):
    """Base exception for the relay."""
    pass


class RateLimitedError(RelayError):
    """Raised when a client exceeded its admissions for the current window."""

    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(f"Rate limit exceeded for '{identity}'")


class UnauthorizedError(RelayError):
    """Raised when the relay is disabled or the path credential does not match."""

    def __init__(self, reason: str = "Credential mismatch"):
        self.reason = reason
        super().__init__(reason)


class RelayExhaustedError(RelayError):
    """Raised when every upstream attempt failed at the transport level."""

    def __init__(self, attempts: int, last_error: Exception = None):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Upstream unreachable after {attempts} attempt(s): {last_error!r}")
