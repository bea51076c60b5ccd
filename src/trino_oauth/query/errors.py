"""Errors raised at the query execution boundary."""

from __future__ import annotations


class QueryError(Exception):
    """Raised when a query cannot be executed."""

    def __init__(
        self, message: str, status_code: int | None = None, details: str | None = None
    ):
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class QueryAuthenticationError(QueryError):
    """Raised when the engine rejects the bearer token (HTTP 401)."""

    pass


class QueryAuthorizationError(QueryError):
    """Raised when the token lacks the audience or permissions (HTTP 403)."""

    pass


class NotAuthenticatedError(QueryError):
    """Raised when no usable token is available to run a query."""

    pass
