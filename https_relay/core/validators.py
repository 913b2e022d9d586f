"""
Input Validators

This module provides the credential check used before anything is relayed.

Security Considerations:
- An empty configured key never matches (fail closed)
- Comparison is exact and constant-time (no normalization, no stripping)
- The path tail is intentionally NOT validated here: it reaches the upstream
  verbatim, dot segments included. The upstream must not rely on the relay
  for path confinement.
"""

import hmac


def credentials_match(provided: str, expected: str) -> bool:
    """
    Compare a path credential against the configured shared key.

    Args:
        provided: Credential segment taken from the inbound path
        expected: Configured shared key

    Returns:
        True only when a key is configured and both strings are identical
    """
    if not expected or provided is None:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))
