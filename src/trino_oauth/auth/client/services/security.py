"""Security utilities for OAuth 2.0 flows.

Provides cryptographically secure parameter generation and validation
for the state (CSRF) and nonce (replay) parameters.
"""

from __future__ import annotations

import secrets
import string

from trino_oauth.auth.client.models.errors import PKCEError

RANDOM_ALPHABET = string.ascii_letters + string.digits
DEFAULT_RANDOM_LENGTH = 32


def generate_random_string(length: int = DEFAULT_RANDOM_LENGTH) -> str:
    """Generate a cryptographically secure random string.

    Returns:
        Random string over ``[A-Za-z0-9]`` of the requested length

    Raises:
        PKCEError: If the secure random source is unavailable
    """
    try:
        return "".join(secrets.choice(RANDOM_ALPHABET) for _ in range(length))
    except (OSError, NotImplementedError) as e:
        raise PKCEError(f"Secure random source unavailable: {e}") from e


def generate_state() -> str:
    """Generate the state parameter that ties the callback to this attempt."""
    return generate_random_string(DEFAULT_RANDOM_LENGTH)


def generate_nonce() -> str:
    """Generate the OIDC nonce echoed back inside the ID token."""
    return generate_random_string(DEFAULT_RANDOM_LENGTH)


def verify_state(received: str | None, expected: str | None) -> bool:
    """Compare the callback state against the stored state.

    Exact match only, no normalization. Missing or empty values never match.
    """
    if not received or not expected:
        return False
    return secrets.compare_digest(received.encode("utf-8"), expected.encode("utf-8"))
