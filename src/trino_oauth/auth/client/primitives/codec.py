"""Bearer token decoding for expiry checks and identity extraction.

Structured (JWT) tokens are decoded without signature verification: the
client only reads claims it was handed by the provider, and the query
engine remains responsible for validating the token. Opaque tokens are
equally valid bearer credentials and simply yield no claims.

PyJWT parses the header segment before the payload, so a token whose
header is not a JSON object is treated as opaque even when its payload
segment would decode.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

import jwt

from trino_oauth.auth.client.models.identity import UserIdentity

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_BUFFER_SECONDS = 5.0

_UNVERIFIED_OPTIONS = {
    "verify_signature": False,
    "verify_exp": False,
    "verify_nbf": False,
    "verify_iat": False,
    "verify_aud": False,
    "verify_iss": False,
    "verify_sub": False,
    "verify_jti": False,
}


class TokenCodec:
    """Reads claims, expiry and identity out of bearer tokens."""

    def __init__(
        self,
        buffer_seconds: float = DEFAULT_EXPIRY_BUFFER_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the codec.

        Args:
            buffer_seconds: Grace window subtracted from ``exp`` to absorb
                clock skew
            clock: Source of the current Unix time in seconds
        """
        self.buffer_seconds = buffer_seconds
        self._clock = clock

    def decode_claims(self, token: str | None) -> dict[str, Any] | None:
        """Decode the payload of a structured token.

        Returns:
            The claims, or None when the token is not three base64url
            segments carrying a JSON object (opaque tokens)
        """
        if not token:
            return None

        try:
            return jwt.decode(token, options=_UNVERIFIED_OPTIONS)
        except jwt.InvalidTokenError as e:
            logger.debug(f"Token is not a decodable JWT, treating as opaque: {e}")
            return None

    def expires_at(self, token: str | None) -> float | None:
        """Return the ``exp`` claim as Unix seconds, if the token carries one."""
        claims = self.decode_claims(token)
        if not claims:
            return None

        exp = claims.get("exp")
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            return None
        return float(exp)

    def is_expired(self, token: str | None) -> bool:
        """Check whether a token is past its expiry, less the grace buffer.

        A token without decodable expiry is not expired: this component
        cannot assert expiry, so rejection is left to the query engine.
        An empty token is expired.
        """
        if not token:
            return True

        exp = self.expires_at(token)
        if exp is None:
            return False

        return self._clock() > exp - self.buffer_seconds

    def extract_identity(self, token: str | None) -> UserIdentity | None:
        """Map the claims of an ID token or access token to a UserIdentity."""
        claims = self.decode_claims(token)
        if claims is None:
            return None
        return UserIdentity.from_claims(claims)

    def best_identity(
        self, id_token: str | None, access_token: str | None
    ) -> UserIdentity | None:
        """Extract identity from the ID token, falling back to the access token."""
        return self.extract_identity(id_token) or self.extract_identity(access_token)
