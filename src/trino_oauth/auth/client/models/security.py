"""PKCE parameter record (RFC 7636)."""

from __future__ import annotations

import re
from dataclasses import dataclass

MIN_VERIFIER_LENGTH = 43
MAX_VERIFIER_LENGTH = 128

# Unreserved characters, RFC 7636 Section 4.1
_VERIFIER_PATTERN = re.compile(r"^[A-Za-z0-9\-._~]+$")
# base64url of a SHA-256 digest, unpadded
_S256_CHALLENGE_PATTERN = re.compile(r"^[A-Za-z0-9\-_]{43}$")


@dataclass(frozen=True)
class PKCEParameters:
    """Verifier and challenge of one login attempt.

    The verifier stays with the client until the code exchange. Only the
    challenge travels in the authorization URL.
    """

    code_verifier: str
    code_challenge: str
    code_challenge_method: str = "S256"

    def __post_init__(self) -> None:
        length = len(self.code_verifier)
        if not MIN_VERIFIER_LENGTH <= length <= MAX_VERIFIER_LENGTH:
            raise ValueError(
                f"code_verifier must be {MIN_VERIFIER_LENGTH}-"
                f"{MAX_VERIFIER_LENGTH} characters, got {length}"
            )
        if not _VERIFIER_PATTERN.match(self.code_verifier):
            raise ValueError("code_verifier contains characters outside RFC 7636")
        if self.code_challenge_method != "S256":
            raise ValueError("Only S256 code challenge method is supported")
        if not _S256_CHALLENGE_PATTERN.match(self.code_challenge):
            raise ValueError("code_challenge is not an unpadded S256 digest")
