"""Authorization flow models for OAuth 2.0.

Contains models for authorization requests and callback handling.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlencode


@dataclass(frozen=True)
class AuthorizationRequestState:
    """Secrets of one login attempt, kept until the callback consumes them."""

    state: str
    nonce: str
    code_verifier: str | None = None


@dataclass(frozen=True)
class AuthorizationRequest:
    """Authorization request parameters for the authorization code flow."""

    authorization_endpoint: str
    client_id: str
    redirect_uri: str
    scope: str
    state: str
    nonce: str
    code_challenge: str | None = None
    code_challenge_method: str = "S256"

    def build_authorization_url(self) -> str:
        """Build the complete authorization URL."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": self.scope,
            "state": self.state,
            "nonce": self.nonce,
        }

        if self.code_challenge:
            params["code_challenge"] = self.code_challenge
            params["code_challenge_method"] = self.code_challenge_method

        return f"{self.authorization_endpoint}?{urlencode(params)}"


@dataclass(frozen=True)
class BuiltAuthorizationRequest:
    """Result of building an authorization request.

    ``url`` is the navigation target. ``state``, ``nonce`` and
    ``code_verifier`` must be persisted by the caller for the callback.
    """

    url: str
    state: str
    nonce: str
    code_verifier: str | None

    def to_request_state(self) -> AuthorizationRequestState:
        return AuthorizationRequestState(
            state=self.state, nonce=self.nonce, code_verifier=self.code_verifier
        )


@dataclass(frozen=True)
class AuthorizationResponse:
    code: str | None = None
    state: str | None = None
    error: str | None = None
    error_description: str | None = None

    def is_success(self) -> bool:
        return self.error is None and self.code is not None

    def is_error(self) -> bool:
        return self.error is not None
