"""Browser-session scoped storage for tokens, identity and login attempts.

The store never outlives the session it is bound to. Writes are
synchronous, so nothing in here is a suspension point, and ``clear()``
removes every owned key in one step.
"""

from __future__ import annotations

import json
import logging
from collections.abc import MutableMapping
from typing import Protocol

from pydantic import ValidationError

from trino_oauth.auth.client.models.flow import AuthorizationRequestState
from trino_oauth.auth.client.models.identity import UserIdentity
from trino_oauth.auth.client.models.tokens import TokenSet

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    """Capability the session controller needs from session storage.

    Implementations may use an in-memory map, an encrypted cookie session
    or a platform keychain, as long as lifetime is scoped to the session
    and ``clear()`` is all-or-nothing.
    """

    def save_tokens(self, token_set: TokenSet) -> None: ...

    def get_tokens(self) -> TokenSet | None: ...

    def save_user(self, user: UserIdentity) -> None: ...

    def get_user(self) -> UserIdentity | None: ...

    def save_authorization_request(self, request: AuthorizationRequestState) -> None:
        ...

    def get_authorization_request(self) -> AuthorizationRequestState | None: ...

    def clear_authorization_request(self) -> None: ...

    def clear(self) -> None: ...


class MappingSessionStore:
    """SessionStore over any string-keyed mutable mapping.

    Suits server-side session objects such as Starlette's ``request.session``.
    Only keys under ``prefix`` are touched, so other session data survives
    ``clear()``.
    """

    KEYS = ("tokens", "user", "authorization_request")

    def __init__(self, mapping: MutableMapping[str, str], prefix: str = "oauth_"):
        self._mapping = mapping
        self._prefix = prefix

    def _key(self, name: str) -> str:
        return f"{self._prefix}{name}"

    def save_tokens(self, token_set: TokenSet) -> None:
        self._mapping[self._key("tokens")] = token_set.model_dump_json()

    def get_tokens(self) -> TokenSet | None:
        raw = self._mapping.get(self._key("tokens"))
        if not raw:
            return None
        try:
            return TokenSet.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable stored tokens: {e}")
            return None

    def save_user(self, user: UserIdentity) -> None:
        self._mapping[self._key("user")] = user.model_dump_json()

    def get_user(self) -> UserIdentity | None:
        raw = self._mapping.get(self._key("user"))
        if not raw:
            return None
        try:
            return UserIdentity.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable stored user: {e}")
            return None

    def save_authorization_request(self, request: AuthorizationRequestState) -> None:
        self._mapping[self._key("authorization_request")] = json.dumps(
            {
                "state": request.state,
                "nonce": request.nonce,
                "code_verifier": request.code_verifier,
            }
        )

    def get_authorization_request(self) -> AuthorizationRequestState | None:
        raw = self._mapping.get(self._key("authorization_request"))
        if not raw:
            return None
        try:
            data = json.loads(raw)
            return AuthorizationRequestState(
                state=data["state"],
                nonce=data["nonce"],
                code_verifier=data.get("code_verifier"),
            )
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Discarding unreadable authorization request: {e}")
            return None

    def clear_authorization_request(self) -> None:
        self._mapping.pop(self._key("authorization_request"), None)

    def clear(self) -> None:
        for name in self.KEYS:
            self._mapping.pop(self._key(name), None)
        logger.debug("Cleared session store")


class InMemorySessionStore(MappingSessionStore):
    """SessionStore backed by a private dict, for one process-local session."""

    def __init__(self):
        super().__init__({})
