"""Minimal Trino client over the REST statement protocol.

A statement is submitted with ``POST /v1/statement`` and its results are
paged in by following ``nextUri`` until the server stops returning one.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from trino_oauth.query.errors import (
    QueryAuthenticationError,
    QueryAuthorizationError,
    QueryError,
)

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "trino-oauth-demo"


class TrinoClient:
    """Executes statements against Trino as the holder of a bearer token."""

    def __init__(
        self,
        server_url: str,
        catalog: str = "tpch",
        schema: str = "sf1",
        source: str = DEFAULT_SOURCE,
        timeout: float = 60.0,
    ):
        self.server_url = server_url.rstrip("/")
        self.catalog = catalog
        self.schema = schema
        self.source = source
        self._http_client = httpx.AsyncClient(timeout=timeout)

    async def execute(self, query: str, bearer_token: str, user: str) -> list[Any]:
        """Run ``query`` and return every row.

        Raises:
            QueryAuthenticationError: Trino answered 401
            QueryAuthorizationError: Trino answered 403
            QueryError: Any other transport, protocol or query failure
        """
        headers = {
            "Authorization": f"Bearer {bearer_token}",
            "X-Trino-User": user,
            "X-Trino-Catalog": self.catalog,
            "X-Trino-Schema": self.schema,
            "X-Trino-Source": self.source,
        }

        rows: list[Any] = []
        payload = await self._send(
            "POST", f"{self.server_url}/v1/statement", headers, content=query
        )

        while True:
            rows.extend(payload.get("data") or [])
            next_uri = payload.get("nextUri")
            if not next_uri:
                break
            payload = await self._send("GET", next_uri, headers)

        logger.info(f"Query executed successfully. Rows returned: {len(rows)}")
        return rows

    async def _send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        content: str | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self._http_client.request(
                method, url, headers=headers, content=content
            )
        except httpx.HTTPError as e:
            raise QueryError(f"HTTP error talking to Trino: {e}") from e

        if response.status_code == 401:
            raise QueryAuthenticationError(
                "Invalid or expired token. Please log in again.", 401, response.text
            )
        if response.status_code == 403:
            raise QueryAuthorizationError(
                "Token does not have required audience claim or permissions.",
                403,
                response.text,
            )
        if response.status_code != 200:
            raise QueryError(
                f"Trino returned HTTP {response.status_code}",
                response.status_code,
                response.text,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise QueryError(f"Invalid Trino response format: {e}") from e

        if not isinstance(payload, dict):
            raise QueryError(
                "Invalid Trino response format: expected a JSON object",
                details=response.text,
            )

        error = payload.get("error")
        if isinstance(error, dict):
            message = error.get("message") or "Query failed"
            raise QueryError(message, details=error.get("errorName"))
        if error:
            raise QueryError(str(error))

        return payload

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()
