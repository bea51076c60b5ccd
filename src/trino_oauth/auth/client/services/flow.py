"""Authorization code flow: request building and callback validation.

The builder is stateless: it hands back the state and code verifier so the
caller can persist them until the callback arrives. The validator reads
only the query string of the callback, never its fragment.
"""

from __future__ import annotations

import logging
from urllib.parse import parse_qs, urlparse

from trino_oauth.auth.client.models.config import ProviderConfig
from trino_oauth.auth.client.models.errors import (
    CsrfMismatchError,
    MalformedCallbackError,
    ProviderDeniedError,
)
from trino_oauth.auth.client.models.flow import (
    AuthorizationRequest,
    AuthorizationResponse,
    BuiltAuthorizationRequest,
)
from trino_oauth.auth.client.primitives.pkce import PKCEGenerator
from trino_oauth.auth.client.services.security import (
    generate_nonce,
    generate_state,
    verify_state,
)

logger = logging.getLogger(__name__)


class AuthorizationRequestBuilder:
    """Composes provider authorization URLs for the code flow with PKCE."""

    def __init__(self, pkce_generator: PKCEGenerator | None = None):
        self._pkce_generator = pkce_generator or PKCEGenerator()

    def build(self, config: ProviderConfig) -> BuiltAuthorizationRequest:
        """Build an authorization request for ``config``.

        Generates fresh state, nonce and PKCE parameters on every call.

        Returns:
            BuiltAuthorizationRequest with the URL and the secrets to persist

        Raises:
            PKCEError: If secure random generation fails
        """
        state = generate_state()
        nonce = generate_nonce()

        code_verifier = None
        code_challenge = None
        if config.uses_pkce:
            pkce_params = self._pkce_generator.generate_parameters()
            code_verifier = pkce_params.code_verifier
            code_challenge = pkce_params.code_challenge

        auth_request = AuthorizationRequest(
            authorization_endpoint=config.authorization_endpoint,
            client_id=config.client_id,
            redirect_uri=config.redirect_uri,
            scope=config.scope,
            state=state,
            nonce=nonce,
            code_challenge=code_challenge,
        )

        logger.debug(
            f"Built authorization request for client {config.client_id} "
            f"(pkce={config.uses_pkce})"
        )

        return BuiltAuthorizationRequest(
            url=auth_request.build_authorization_url(),
            state=state,
            nonce=nonce,
            code_verifier=code_verifier,
        )


class CallbackValidator:
    """Parses and validates the redirect back from the provider."""

    def parse(self, redirect_uri: str) -> AuthorizationResponse:
        """Extract ``code``, ``state``, ``error`` and ``error_description``.

        Only the query string is read. Parameters appearing in the fragment
        (implicit flow) are ignored.
        """
        query_params = parse_qs(urlparse(redirect_uri).query)

        def get_single_param(key: str) -> str | None:
            values = query_params.get(key, [])
            return values[0] if values else None

        return AuthorizationResponse(
            code=get_single_param("code"),
            state=get_single_param("state"),
            error=get_single_param("error"),
            error_description=get_single_param("error_description"),
        )

    def verify_state(self, received: str | None, expected: str | None) -> bool:
        return verify_state(received, expected)

    def validate(
        self, response: AuthorizationResponse, expected_state: str | None
    ) -> str:
        """Validate a parsed callback and return its authorization code.

        A provider error is authoritative and checked first.

        Raises:
            ProviderDeniedError: If the provider reported an error
            MalformedCallbackError: If neither code nor error is present
            CsrfMismatchError: If the state does not match the stored state
        """
        if response.is_error():
            logger.warning(
                f"Authorization callback contained error: {response.error} - "
                f"{response.error_description}"
            )
            raise ProviderDeniedError(response.error, response.error_description)

        if response.code is None:
            logger.warning("Authorization callback missing both code and error")
            raise MalformedCallbackError("Authorization callback missing code")

        if not self.verify_state(response.state, expected_state):
            logger.warning("Authorization callback state mismatch")
            raise CsrfMismatchError("Invalid state parameter - possible CSRF attack")

        return response.code
