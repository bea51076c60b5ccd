import time

import jwt
import pytest

SIGNING_KEY = "test-signing-key-0123456789abcdef-0123456789"


@pytest.fixture
def encode_token():
    """Encode claims into a structured (JWT) bearer token."""

    def _encode_token(claims: dict) -> str:
        return jwt.encode(claims, SIGNING_KEY, algorithm="HS256")

    return _encode_token


@pytest.fixture
def make_token(encode_token):
    """Build a structured token whose ``exp`` is ``expires_in`` seconds away."""

    def _make_token(expires_in: float | None = 3600, **claims) -> str:
        if expires_in is not None:
            claims["exp"] = int(time.time() + expires_in)
        return encode_token(claims)

    return _make_token
