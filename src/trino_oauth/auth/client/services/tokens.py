"""OAuth 2.0 token exchange and refresh through the trusted intermediary.

The browser-facing client never holds a client secret. It posts the
authorization code plus the PKCE verifier to the intermediary, which adds
whatever provider credentials it holds and forwards to the token endpoint.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from trino_oauth.auth.client.models.errors import (
    RefreshFailedError,
    TokenError,
    TokenExchangeFailedError,
)
from trino_oauth.auth.client.models.tokens import (
    RefreshTokenRequest,
    TokenRequest,
    TokenSet,
)

if TYPE_CHECKING:
    from trino_oauth.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_INTERMEDIARY_URL = "http://localhost:3001/api/oauth"


class TokenExchangeClient:
    """Exchanges authorization codes and refresh tokens for a TokenSet.

    Failed exchanges are never retried here: authorization codes are single
    use, and a rejected refresh token is terminal for the session.

    Uses application/x-www-form-urlencoded encoding as required by RFC 6749.
    """

    def __init__(
        self,
        client_id: str,
        intermediary_url: str = DEFAULT_INTERMEDIARY_URL,
        timeout: float = 10.0,
    ):
        """Initialize the exchange client.

        Args:
            client_id: Public client identifier registered with the provider
            intermediary_url: Base URL of the intermediary's OAuth routes
            timeout: HTTP request timeout in seconds
        """
        self.client_id = client_id
        self.token_url = f"{intermediary_url.rstrip('/')}/token"
        self.refresh_url = f"{intermediary_url.rstrip('/')}/refresh"
        self.timeout = timeout
        self._http_client = httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenExchangeClient:
        return cls(settings.client_id, intermediary_url=settings.oauth_api_url)

    async def exchange_code(
        self, code: str, code_verifier: str | None, redirect_uri: str
    ) -> TokenSet:
        """Exchange an authorization code for tokens.

        Raises:
            TokenExchangeFailedError: On transport failure, non-2xx status or
                a response without an access token. ``body`` carries the raw
                error body.
        """
        token_request = TokenRequest(
            token_endpoint=self.token_url,
            code=code,
            redirect_uri=redirect_uri,
            client_id=self.client_id,
            code_verifier=code_verifier,
        )

        logger.debug(
            f"Exchanging authorization code at {token_request.token_endpoint} "
            f"(pkce={code_verifier is not None})"
        )

        return await self._request_tokens(
            token_request.token_endpoint,
            token_request.to_form_data(),
            TokenExchangeFailedError,
            "Token exchange",
        )

    async def refresh(self, refresh_token: str) -> TokenSet:
        """Exchange a refresh token for a new TokenSet.

        The returned set may lack ``refresh_token``; merging with the stored
        set is the caller's job.

        Raises:
            RefreshFailedError: On any failure. Terminal for the session.
        """
        refresh_request = RefreshTokenRequest(
            token_endpoint=self.refresh_url,
            refresh_token=refresh_token,
            client_id=self.client_id,
        )

        logger.debug(f"Refreshing access token at {refresh_request.token_endpoint}")

        return await self._request_tokens(
            refresh_request.token_endpoint,
            refresh_request.to_form_data(),
            RefreshFailedError,
            "Token refresh",
        )

    async def _request_tokens(
        self,
        url: str,
        form_data: dict[str, str],
        error_cls: type[TokenError],
        operation: str,
    ) -> TokenSet:
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }

        try:
            response = await self._http_client.post(
                url, data=form_data, headers=headers
            )
        except httpx.HTTPError as e:
            raise error_cls(f"HTTP error during {operation.lower()}: {e}") from e

        if not 200 <= response.status_code < 300:
            body = response.text
            description = self._describe_error(response)
            logger.error(
                f"{operation} failed with {response.status_code}: {description}"
            )
            raise error_cls(
                f"{operation} failed: {description}",
                status_code=response.status_code,
                body=body,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise error_cls(
                f"Invalid token response format: {e}",
                status_code=response.status_code,
            ) from e

        if not isinstance(payload, dict):
            raise error_cls(
                "Invalid token response format: expected a JSON object, "
                f"got {type(payload).__name__}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            token_set = TokenSet.from_response(payload)
        except ValidationError as e:
            raise error_cls(
                f"Invalid token response format: {e}",
                status_code=response.status_code,
            ) from e

        logger.info(f"{operation} successful")
        return token_set

    def _describe_error(self, response: httpx.Response) -> str:
        """Pick a readable message out of a token endpoint error body."""
        try:
            error_data = response.json()
        except ValueError:
            return f"HTTP {response.status_code}"

        if not isinstance(error_data, dict):
            return f"HTTP {response.status_code}"

        return (
            error_data.get("error_description")
            or error_data.get("message")
            or error_data.get("error")
            or f"HTTP {response.status_code}"
        )

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()
