"""User identity derived from token claims."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class UserIdentity(BaseModel):
    """Identity of the signed-in user.

    Never authoritative on its own: always recomputed from the best
    available credential (ID token first, then access token).
    """

    subject: str | None = None
    email: str | None = None
    display_name: str | None = None
    picture_url: str | None = None
    claims: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> UserIdentity:
        display_name = (
            claims.get("name")
            or claims.get("preferred_username")
            or claims.get("email")
        )
        return cls(
            subject=claims.get("sub"),
            email=claims.get("email"),
            display_name=display_name,
            picture_url=claims.get("picture"),
            claims=dict(claims),
        )
