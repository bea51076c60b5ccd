"""Client side of the query execution boundary.

Hands ``{query, bearer token}`` to the query API and classifies the
answer into rows or an auth-related error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx

from trino_oauth.auth.client.controller import AuthSessionController
from trino_oauth.query.errors import (
    NotAuthenticatedError,
    QueryAuthenticationError,
    QueryAuthorizationError,
    QueryError,
)

if TYPE_CHECKING:
    from trino_oauth.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_BACKEND_URL = "http://localhost:3001"


@dataclass(frozen=True)
class QueryResult:
    rows: list[Any] = field(default_factory=list)
    row_count: int = 0


class QueryClient:
    """Posts queries with a bearer token to the backend query API."""

    def __init__(self, backend_url: str = DEFAULT_BACKEND_URL, timeout: float = 60.0):
        self.query_url = f"{backend_url.rstrip('/')}/api/query"
        self._http_client = httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> QueryClient:
        return cls(settings.backend_url)

    async def execute(self, query: str, bearer_token: str) -> QueryResult:
        """Execute ``query`` as the holder of ``bearer_token``.

        Raises:
            QueryAuthenticationError: Token invalid or expired (401)
            QueryAuthorizationError: Audience or permissions missing (403)
            QueryError: Any other failure
        """
        logger.debug(f"Executing query: {query[:50]}")

        try:
            response = await self._http_client.post(
                self.query_url,
                json={"query": query},
                headers={"Authorization": f"Bearer {bearer_token}"},
            )
        except httpx.HTTPError as e:
            raise QueryError(f"HTTP error during query execution: {e}") from e

        if response.status_code == 200:
            try:
                data = response.json()
            except ValueError as e:
                raise QueryError(f"Invalid query response format: {e}") from e

            rows = data.get("data") or []
            row_count = data.get("rowCount", len(rows))
            logger.info(f"Query returned {row_count} rows")
            return QueryResult(rows=rows, row_count=row_count)

        message, details = self._describe_error(response)
        if response.status_code == 401:
            raise QueryAuthenticationError(message, 401, details)
        if response.status_code == 403:
            raise QueryAuthorizationError(message, 403, details)
        raise QueryError(message, response.status_code, details)

    def _describe_error(self, response: httpx.Response) -> tuple[str, str | None]:
        try:
            error_data = response.json()
        except ValueError:
            return f"Query failed with HTTP {response.status_code}", response.text

        if not isinstance(error_data, dict):
            return f"Query failed with HTTP {response.status_code}", response.text

        message = error_data.get("message") or error_data.get("error")
        return (
            message or f"Query failed with HTTP {response.status_code}",
            error_data.get("details"),
        )

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()


class QueryRunner:
    """Runs queries with whatever valid token the session can provide."""

    def __init__(self, controller: AuthSessionController, client: QueryClient):
        self._controller = controller
        self._client = client

    async def run(self, query: str) -> QueryResult:
        """Execute ``query`` for the signed-in user.

        Raises:
            NotAuthenticatedError: If the session has no usable token
            QueryError: Propagated from the query client
        """
        token = await self._controller.get_valid_token()
        if token is None:
            raise NotAuthenticatedError("Not authenticated. Please log in.")

        return await self._client.execute(query, token)
