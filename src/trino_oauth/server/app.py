"""Trusted intermediary between the browser client, the provider and Trino.

Holds the provider credentials the browser must never see, forwards code
and refresh exchanges to the provider token endpoint, and proxies queries
to Trino with the caller's bearer token.
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Any
from urllib.parse import parse_qs

import httpx
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from trino_oauth.auth.client.primitives.codec import TokenCodec
from trino_oauth.config import Settings
from trino_oauth.query.errors import (
    QueryAuthenticationError,
    QueryAuthorizationError,
    QueryError,
)
from trino_oauth.server.trino import TrinoClient

logger = logging.getLogger(__name__)

DEFAULT_QUERY_USER = "oauth-user"


class TokenIntermediary:
    """HTTP API for token exchange, token refresh and query execution.

    Routes:
    - ``GET /health``
    - ``POST /api/oauth/token``: authorization code exchange
    - ``POST /api/oauth/refresh``: refresh token exchange
    - ``POST /api/query``: bearer-authenticated query execution
    """

    def __init__(
        self,
        settings: Settings,
        trino_client: TrinoClient | None = None,
        timeout: float = 10.0,
    ):
        self.settings = settings
        self.provider = settings.provider()
        self._http_client = httpx.AsyncClient(timeout=timeout)
        self._trino_client = trino_client or TrinoClient(
            settings.trino_url,
            catalog=settings.trino_catalog,
            schema=settings.trino_schema,
        )
        self._codec = TokenCodec()
        self.app = self._create_app()

    def _create_app(self) -> Starlette:
        """Create the Starlette application with OAuth and query endpoints."""
        routes = [
            Route("/health", self._handle_health, methods=["GET"]),
            Route("/api/oauth/token", self._handle_token, methods=["POST"]),
            Route("/api/oauth/refresh", self._handle_refresh, methods=["POST"]),
            Route("/api/query", self._handle_query, methods=["POST"]),
        ]
        middleware = [
            Middleware(
                CORSMiddleware,
                allow_origins=[self.settings.cors_origin],
                allow_credentials=True,
                allow_methods=["GET", "POST"],
                allow_headers=["Authorization", "Content-Type"],
            )
        ]

        @asynccontextmanager
        async def lifespan(app: Starlette):
            yield
            await self.close()

        return Starlette(routes=routes, middleware=middleware, lifespan=lifespan)

    async def _handle_health(self, request: Request) -> JSONResponse:
        return JSONResponse({"status": "ok", "message": "Backend is running"})

    async def _handle_token(self, request: Request) -> JSONResponse:
        """Exchange an authorization code for tokens at the provider."""
        try:
            params = await self._read_params(request)
        except ValueError:
            return self._bad_request("Invalid request body")

        code = params.get("code")
        if not code:
            return self._bad_request("Authorization code is required")

        form_data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": params.get("redirect_uri") or self.provider.redirect_uri,
            "client_id": self.settings.client_id,
        }

        # PKCE verifier is optional: confidential clients may rely on the secret
        code_verifier = params.get("code_verifier")
        if code_verifier:
            form_data["code_verifier"] = code_verifier

        logger.info(
            f"Exchanging authorization code with {self.provider.name} "
            f"(pkce={bool(code_verifier)})"
        )
        return await self._forward_to_provider(
            form_data,
            "Token Exchange Failed",
            "Failed to exchange authorization code for tokens",
        )

    async def _handle_refresh(self, request: Request) -> JSONResponse:
        """Exchange a refresh token for new tokens at the provider."""
        try:
            params = await self._read_params(request)
        except ValueError:
            return self._bad_request("Invalid request body")

        refresh_token = params.get("refresh_token")
        if not refresh_token:
            return self._bad_request("Refresh token is required")

        form_data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": self.settings.client_id,
        }

        logger.info(f"Refreshing tokens with {self.provider.name}")
        return await self._forward_to_provider(
            form_data, "Token Refresh Failed", "Failed to refresh access token"
        )

    async def _forward_to_provider(
        self, form_data: dict[str, str], error_label: str, error_message: str
    ) -> JSONResponse:
        client_secret = self.settings.effective_client_secret
        if client_secret:
            form_data["client_secret"] = client_secret

        try:
            response = await self._http_client.post(
                self.provider.token_endpoint,
                data=form_data,
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Accept": "application/json",
                },
            )
        except httpx.HTTPError as e:
            logger.error(f"Error reaching token endpoint: {e}")
            return JSONResponse(
                {"error": "Bad Gateway", "message": f"Token endpoint unreachable: {e}"},
                status_code=502,
            )

        if not 200 <= response.status_code < 300:
            logger.error(f"{error_label}: {response.status_code} {response.text}")
            return JSONResponse(
                {
                    "error": error_label,
                    "message": error_message,
                    "details": response.text,
                },
                status_code=response.status_code,
            )

        try:
            tokens = response.json()
        except ValueError:
            tokens = None

        if not isinstance(tokens, dict) or not tokens.get("access_token"):
            logger.error(f"{error_label}: token endpoint returned no access token")
            return JSONResponse(
                {
                    "error": error_label,
                    "message": "Token endpoint returned no access token",
                    "details": response.text,
                },
                status_code=502,
            )

        logger.info("Token exchange successful")
        return JSONResponse(
            {
                "access_token": tokens.get("access_token"),
                "id_token": tokens.get("id_token"),
                "token_type": tokens.get("token_type") or "Bearer",
                "expires_in": tokens.get("expires_in"),
                "refresh_token": tokens.get("refresh_token"),
            }
        )

    async def _handle_query(self, request: Request) -> JSONResponse:
        """Run a query on Trino with the caller's bearer token."""
        auth_header = request.headers.get("authorization") or ""
        if not auth_header.startswith("Bearer "):
            return JSONResponse(
                {
                    "error": "Unauthorized",
                    "message": "Missing or invalid Authorization header",
                },
                status_code=401,
            )
        token = auth_header[len("Bearer ") :]

        try:
            body = json.loads(await request.body() or b"{}")
        except ValueError:
            return self._bad_request("Query string is required")

        query = body.get("query") if isinstance(body, dict) else None
        if not query or not isinstance(query, str):
            return self._bad_request("Query string is required")

        user = self._query_user(token)
        logger.info(f"Executing query for {user}: {query[:50]}")

        try:
            rows = await self._trino_client.execute(query, token, user)
        except QueryAuthenticationError as e:
            return JSONResponse(
                {
                    "error": "Authentication Failed",
                    "message": "Invalid or expired token. Please log in again.",
                    "details": e.details,
                },
                status_code=401,
            )
        except QueryAuthorizationError as e:
            return JSONResponse(
                {
                    "error": "Authorization Failed",
                    "message": "Token does not have required audience claim "
                    "or permissions.",
                    "details": e.details,
                },
                status_code=403,
            )
        except QueryError as e:
            logger.error(f"Error executing query: {e}")
            return JSONResponse(
                {
                    "error": "Query Execution Failed",
                    "message": str(e),
                    "details": e.details,
                },
                status_code=500,
            )

        return JSONResponse({"success": True, "data": rows, "rowCount": len(rows)})

    def _query_user(self, token: str) -> str:
        """Pick the Trino user from token claims, if the token is structured."""
        claims = self._codec.decode_claims(token) or {}
        return (
            claims.get("email")
            or claims.get("sub")
            or claims.get("preferred_username")
            or DEFAULT_QUERY_USER
        )

    async def _read_params(self, request: Request) -> dict[str, Any]:
        """Read a form-encoded or JSON body into a flat dict.

        Raises:
            ValueError: If a JSON body is malformed or not an object
        """
        raw = await request.body()
        content_type = request.headers.get("content-type") or ""

        if content_type.startswith("application/json"):
            data = json.loads(raw or b"{}")
            if not isinstance(data, dict):
                raise ValueError("JSON body must be an object")
            return data

        parsed = parse_qs(raw.decode("utf-8"))
        return {key: values[0] for key, values in parsed.items() if values}

    def _bad_request(self, message: str) -> JSONResponse:
        return JSONResponse(
            {"error": "Bad Request", "message": message}, status_code=400
        )

    async def close(self) -> None:
        """Close HTTP clients and clean up resources."""
        await self._http_client.aclose()
        await self._trino_client.close()


def create_app(settings: Settings) -> Starlette:
    return TokenIntermediary(settings).app
