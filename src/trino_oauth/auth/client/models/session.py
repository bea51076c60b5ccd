"""Session state exposed by the authentication controller."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from trino_oauth.auth.client.models.identity import UserIdentity
from trino_oauth.auth.client.models.tokens import TokenSet


class SessionStatus(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    LOGGING_IN = "logging_in"
    AUTHENTICATED = "authenticated"
    REFRESHING = "refreshing"


@dataclass(frozen=True)
class SessionState:
    """Snapshot of the authentication state machine.

    Exactly one of unauthenticated, loading, authenticated or error holds.
    Errors are carried by an unauthenticated snapshot with ``error`` set.
    """

    status: SessionStatus = SessionStatus.UNAUTHENTICATED
    error: str | None = None
    user: UserIdentity | None = None
    token_set: TokenSet | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.status == SessionStatus.AUTHENTICATED

    @property
    def is_loading(self) -> bool:
        return self.status in (SessionStatus.LOGGING_IN, SessionStatus.REFRESHING)

    @classmethod
    def unauthenticated(cls, error: str | None = None) -> SessionState:
        return cls(status=SessionStatus.UNAUTHENTICATED, error=error)

    @classmethod
    def authenticated(
        cls, token_set: TokenSet, user: UserIdentity | None
    ) -> SessionState:
        return cls(status=SessionStatus.AUTHENTICATED, user=user, token_set=token_set)
