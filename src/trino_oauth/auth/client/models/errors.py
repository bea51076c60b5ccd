"""Exception hierarchy for OAuth 2.0 authentication errors.

Provides specific exception types for each failure mode of the login flow
so the session controller can map them onto user-visible messages.
"""

from __future__ import annotations


class OAuth2Error(Exception):
    """Base exception for all OAuth 2.0 related errors."""

    pass


class PKCEError(OAuth2Error):
    """Raised when PKCE parameter generation fails.

    This only happens when the entropy source is unavailable. Login must
    be aborted rather than continued with weaker parameters.
    """

    pass


class AuthorizationCallbackError(OAuth2Error):
    """Raised when the authorization callback cannot be accepted."""

    pass


class CsrfMismatchError(AuthorizationCallbackError):
    """Raised when the callback state does not match the stored state.

    Either the state is missing, no login attempt is pending, or the values
    differ. The code must never be exchanged in this case.
    """

    pass


class ProviderDeniedError(AuthorizationCallbackError):
    """Raised when the provider reported an ``error`` in the callback."""

    def __init__(self, error: str, error_description: str | None = None):
        self.error = error
        self.error_description = error_description
        super().__init__(error_description or error)


class MalformedCallbackError(AuthorizationCallbackError):
    """Raised when the callback carries neither a code nor an error."""

    pass


class TokenError(OAuth2Error):
    """Raised when token operations fail."""

    def __init__(
        self, message: str, status_code: int | None = None, body: str | None = None
    ):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class TokenExchangeFailedError(TokenError):
    """Raised when the authorization code to token exchange fails.

    Carries the raw error body returned by the provider for diagnostics.
    Codes are single use, so callers must not retry.
    """

    pass


class RefreshFailedError(TokenError):
    """Raised when the refresh token exchange fails.

    Terminal for the session: stored state must be cleared and the user
    sent back through login.
    """

    pass
