"""PKCE (Proof Key for Code Exchange) generator for OAuth 2.0 public clients.

Implements RFC 7636 verifier/challenge generation. The verifier binds the
authorization code to this client and stands in for a client secret.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
import string

from trino_oauth.auth.client.models.errors import PKCEError
from trino_oauth.auth.client.models.security import (
    MAX_VERIFIER_LENGTH,
    MIN_VERIFIER_LENGTH,
    PKCEParameters,
)

VERIFIER_ALPHABET = string.ascii_letters + string.digits


class PKCEGenerator:
    """Generates PKCE parameters for authorization code flows.

    This implementation follows RFC 7636 requirements:
    - Uses S256 code challenge method (SHA256 + base64url)
    - Generates cryptographically secure code verifiers
    - Restricts verifiers to letters and digits so they are safe in URLs,
      headers and form bodies without escaping
    """

    def generate_parameters(self, length: int = MAX_VERIFIER_LENGTH) -> PKCEParameters:
        """Generate a new verifier/challenge pair.

        Raises:
            PKCEError: If the entropy source is unavailable or the length is
                outside the RFC 7636 range
        """
        code_verifier = self.generate_verifier(length)
        return PKCEParameters(
            code_verifier=code_verifier,
            code_challenge=self.derive_challenge(code_verifier),
            code_challenge_method="S256",
        )

    def generate_verifier(self, length: int = MAX_VERIFIER_LENGTH) -> str:
        """Generate a cryptographically secure code verifier.

        RFC 7636 Section 4.1: code verifier must be 43-128 characters long.

        Args:
            length: Number of characters, 128 by default

        Returns:
            Random string over ``[A-Za-z0-9]``
        """
        if not (MIN_VERIFIER_LENGTH <= length <= MAX_VERIFIER_LENGTH):
            raise PKCEError(
                f"code_verifier length must be {MIN_VERIFIER_LENGTH}-"
                f"{MAX_VERIFIER_LENGTH}, got {length}"
            )

        try:
            return "".join(secrets.choice(VERIFIER_ALPHABET) for _ in range(length))
        except (OSError, NotImplementedError) as e:
            raise PKCEError(f"Secure random source unavailable: {e}") from e

    def derive_challenge(self, code_verifier: str) -> str:
        """Derive the S256 code challenge for a verifier.

        RFC 7636 Section 4.2: BASE64URL-ENCODE(SHA256(code_verifier)),
        without padding.
        """
        digest = hashlib.sha256(code_verifier.encode("utf-8")).digest()
        return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")
