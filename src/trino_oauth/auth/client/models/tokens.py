"""Token models for the OAuth 2.0 authorization code flow.

Contains the session credential bundle and the form-encoded token
endpoint requests used for code exchange and refresh.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field


class TokenSet(BaseModel):
    """Credential bundle of an authenticated session.

    ``expires_in`` is informational only. Authoritative expiry comes from
    the claims of ``access_token`` when it can be decoded.
    """

    access_token: str = Field(min_length=1)
    id_token: str | None = None
    refresh_token: str | None = None
    token_type: str = "Bearer"
    expires_in: int | None = None  # Seconds, as reported by the provider

    @classmethod
    def from_response(cls, response_data: dict[str, Any]) -> TokenSet:
        """Build a TokenSet from a token endpoint JSON response.

        Raises:
            pydantic.ValidationError: If ``access_token`` is missing or empty
        """
        data = dict(response_data)
        if not data.get("token_type"):
            data["token_type"] = "Bearer"
        return cls.model_validate(data)

    def merged_with(self, previous: TokenSet | None) -> TokenSet:
        """Fill credentials the provider did not rotate from ``previous``.

        Providers may omit ``refresh_token`` and ``id_token`` on refresh, in
        which case the stored values stay valid.
        """
        if previous is None:
            return self
        return self.model_copy(
            update={
                "refresh_token": self.refresh_token or previous.refresh_token,
                "id_token": self.id_token or previous.id_token,
            }
        )


@dataclass(frozen=True)
class TokenRequest:
    """Authorization code exchange request (RFC 6749 Section 4.1.3).

    Immutable request parameters. ``code_verifier`` is the PKCE secret
    (RFC 7636) and replaces a client secret for public clients.
    """

    token_endpoint: str
    code: str
    redirect_uri: str
    client_id: str

    code_verifier: str | None = None
    grant_type: str = "authorization_code"

    def to_form_data(self) -> dict[str, str]:
        """Form fields for the token endpoint. The verifier is sent only if set."""
        data = {
            "grant_type": self.grant_type,
            "code": self.code,
            "redirect_uri": self.redirect_uri,
            "client_id": self.client_id,
        }

        if self.code_verifier:
            data["code_verifier"] = self.code_verifier

        return data


@dataclass(frozen=True)
class RefreshTokenRequest:
    """OAuth 2.0 refresh token request parameters (RFC 6749 Section 6)."""

    token_endpoint: str
    refresh_token: str
    client_id: str

    grant_type: str = "refresh_token"

    def to_form_data(self) -> dict[str, str]:
        return {
            "grant_type": self.grant_type,
            "refresh_token": self.refresh_token,
            "client_id": self.client_id,
        }
