"""Login session orchestration for the authorization code flow with PKCE.

Ties request building, callback validation, token exchange, token decoding
and session storage into one state machine:

    UNAUTHENTICATED -> LOGGING_IN -> AUTHENTICATED <-> REFRESHING
    AUTHENTICATED | REFRESHING -> UNAUTHENTICATED (logout or failure)
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque

from trino_oauth.auth.client.models.config import ProviderConfig
from trino_oauth.auth.client.models.errors import (
    CsrfMismatchError,
    OAuth2Error,
    RefreshFailedError,
)
from trino_oauth.auth.client.models.session import SessionState, SessionStatus
from trino_oauth.auth.client.models.tokens import TokenSet
from trino_oauth.auth.client.primitives.codec import TokenCodec
from trino_oauth.auth.client.services.flow import (
    AuthorizationRequestBuilder,
    CallbackValidator,
)
from trino_oauth.auth.client.services.storage import InMemorySessionStore, SessionStore
from trino_oauth.auth.client.services.tokens import TokenExchangeClient

logger = logging.getLogger(__name__)

HANDLED_CALLBACK_WINDOW = 16


class AuthSessionController:
    """Drives login, callback handling, token reuse and logout.

    Every public operation converts OAuth failures into ``state.error``
    instead of raising. The only suspension points are the two network
    calls, and all state-changing operations run under one lock so a token
    read never observes a half-finished callback exchange.
    """

    def __init__(
        self,
        config: ProviderConfig,
        exchange_client: TokenExchangeClient,
        store: SessionStore | None = None,
        codec: TokenCodec | None = None,
        request_builder: AuthorizationRequestBuilder | None = None,
        callback_validator: CallbackValidator | None = None,
    ):
        self.config = config
        self._exchange_client = exchange_client
        self._store = store if store is not None else InMemorySessionStore()
        self._codec = codec or TokenCodec()
        self._request_builder = request_builder or AuthorizationRequestBuilder()
        self._callback_validator = callback_validator or CallbackValidator()

        self._state = SessionState.unauthenticated()
        self._lock = asyncio.Lock()
        self._handled_callbacks: deque[str] = deque(maxlen=HANDLED_CALLBACK_WINDOW)

    @property
    def state(self) -> SessionState:
        return self._state

    async def restore(self) -> SessionState:
        """Re-hydrate the session from storage on process start.

        An unexpired stored access token authenticates directly. An expired
        one is refreshed once if a refresh token is stored. Anything else
        leaves the session unauthenticated.
        """
        async with self._lock:
            token_set = self._store.get_tokens()
            if token_set is None:
                logger.debug("No stored tokens found")
                self._state = SessionState.unauthenticated()
                return self._state

            if not self._codec.is_expired(token_set.access_token):
                user = self._store.get_user() or self._codec.best_identity(
                    token_set.id_token, token_set.access_token
                )
                self._state = SessionState.authenticated(token_set, user)
                logger.info("Session restored from storage")
                return self._state

            if token_set.refresh_token:
                await self._refresh(token_set)
                return self._state

            logger.warning("Stored access token is expired and cannot be refreshed")
            self._fail("Session expired. Please log in again.")
            return self._state

    def login(self) -> str | None:
        """Start a login attempt.

        Persists the attempt's state, nonce and code verifier, then returns
        the URL the browser must navigate to. The callback arrives later as a
        separate ``handle_callback`` call.

        Returns:
            Authorization URL, or None if the request could not be built
        """
        try:
            built = self._request_builder.build(self.config)
        except OAuth2Error as e:
            logger.error(f"Failed to start login: {e}")
            self._state = SessionState.unauthenticated(error=str(e))
            return None

        self._store.save_authorization_request(built.to_request_state())
        self._state = SessionState(status=SessionStatus.LOGGING_IN)
        logger.info(f"Starting login with {self.config.name}")
        return built.url

    async def handle_callback(self, redirect_uri: str) -> SessionState:
        """Complete a login attempt from the provider's redirect.

        Runs validation, code exchange, identity extraction and persistence.
        Any failure clears the store and leaves an error-bearing
        unauthenticated state. A repeated delivery of the same callback is a
        no-op, so the code is exchanged at most once. The most recent
        callbacks are remembered in a bounded window.
        """
        response = self._callback_validator.parse(redirect_uri)
        callback_key = response.code or redirect_uri
        if callback_key in self._handled_callbacks:
            logger.debug("Ignoring duplicate authorization callback")
            return self._state
        self._handled_callbacks.append(callback_key)

        async with self._lock:
            self._state = SessionState(status=SessionStatus.LOGGING_IN)
            pending = self._store.get_authorization_request()

            try:
                code = self._callback_validator.validate(
                    response, pending.state if pending else None
                )
                token_set = await self._exchange_client.exchange_code(
                    code, pending.code_verifier, self.config.redirect_uri
                )
            except CsrfMismatchError as e:
                logger.warning(f"Rejected authorization callback: {e}")
                self._fail("Invalid state parameter - possible CSRF attack")
                return self._state
            except OAuth2Error as e:
                logger.error(f"Authentication error: {e}")
                self._fail(str(e))
                return self._state

            user = self._codec.best_identity(token_set.id_token, token_set.access_token)

            self._store.clear_authorization_request()
            self._store.save_tokens(token_set)
            if user is not None:
                self._store.save_user(user)

            self._state = SessionState.authenticated(token_set, user)
            logger.info("Authentication successful")
            return self._state

    async def get_valid_token(self) -> str | None:
        """Return an access token that is safe to use right now.

        Refreshes lazily when the stored token has expired. Returns None,
        never raises, when no usable token can be produced.
        """
        async with self._lock:
            token_set = self._store.get_tokens()
            if token_set is None:
                return None

            if not self._codec.is_expired(token_set.access_token):
                return token_set.access_token

            if not token_set.refresh_token:
                logger.warning("Access token is expired and cannot be refreshed")
                self._fail("Session expired. Please log in again.")
                return None

            refreshed = await self._refresh(token_set)
            return refreshed.access_token if refreshed else None

    def logout(self) -> SessionState:
        """Drop all session state. Never fails."""
        self._store.clear()
        self._state = SessionState.unauthenticated()
        logger.info("Logged out")
        return self._state

    async def _refresh(self, token_set: TokenSet) -> TokenSet | None:
        """Run one refresh exchange. Caller must hold the lock."""
        self._state = SessionState(
            status=SessionStatus.REFRESHING,
            user=self._state.user,
            token_set=token_set,
        )

        try:
            new_tokens = await self._exchange_client.refresh(token_set.refresh_token)
        except RefreshFailedError as e:
            logger.error(f"Failed to refresh token: {e}")
            self._fail("Session expired. Please log in again.")
            return None

        merged = new_tokens.merged_with(token_set)
        user = self._codec.best_identity(merged.id_token, merged.access_token)
        if user is None:
            user = self._store.get_user()

        self._store.save_tokens(merged)
        if user is not None:
            self._store.save_user(user)

        self._state = SessionState.authenticated(merged, user)
        logger.info("Successfully refreshed access token")
        return merged

    def _fail(self, message: str) -> None:
        self._store.clear()
        self._state = SessionState.unauthenticated(error=message)
