"""Process configuration loaded from the environment.

Values come from ``os.environ`` after ``.env`` has been applied with
python-dotenv. Names match the variables the deployment already uses.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel

from trino_oauth.auth.client.models.config import (
    DEFAULT_REDIRECT_URI,
    ProviderConfig,
    provider_config,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_CLIENT_SECRET = "not-needed-for-pkce"


class Settings(BaseModel):
    """Settings for the token intermediary, query API and browser client."""

    # Identity provider
    provider_name: str = "google"
    authorization_url: str | None = None
    token_url: str | None = None
    client_id: str = "query-app"
    client_secret: str | None = None
    redirect_uri: str = DEFAULT_REDIRECT_URI
    scope: str | None = None
    auth0_domain: str | None = None
    keycloak_url: str | None = None
    keycloak_realm: str | None = None

    # Backend API
    backend_url: str = "http://localhost:3001"
    host: str = "0.0.0.0"
    port: int = 3001
    cors_origin: str = "http://localhost:5173"
    log_level: str = "info"

    # Query engine
    trino_host: str = "localhost"
    trino_port: int = 8080
    trino_catalog: str = "tpch"
    trino_schema: str = "sf1"

    @property
    def oauth_api_url(self) -> str:
        """Base URL of the intermediary's OAuth routes, as seen by clients."""
        return f"{self.backend_url.rstrip('/')}/api/oauth"

    @property
    def trino_url(self) -> str:
        return f"http://{self.trino_host}:{self.trino_port}"

    @property
    def effective_client_secret(self) -> str | None:
        """Client secret to send upstream, or None for public PKCE clients."""
        secret = (self.client_secret or "").strip()
        if not secret or secret == PLACEHOLDER_CLIENT_SECRET:
            return None
        return secret

    def provider(self) -> ProviderConfig:
        return provider_config(
            self.provider_name,
            self.client_id,
            self.redirect_uri,
            authorization_endpoint=self.authorization_url,
            token_endpoint=self.token_url,
            domain=self.auth0_domain,
            base_url=self.keycloak_url,
            realm=self.keycloak_realm,
            scope=self.scope,
        )


_ENVIRONMENT = {
    "provider_name": "OAUTH_PROVIDER",
    "authorization_url": "OAUTH_AUTHORIZATION_URL",
    "token_url": "OAUTH_TOKEN_URL",
    "client_id": "OAUTH2_CLIENT_ID",
    "client_secret": "OAUTH2_CLIENT_SECRET",
    "redirect_uri": "OAUTH_REDIRECT_URI",
    "scope": "OAUTH_SCOPE",
    "auth0_domain": "AUTH0_DOMAIN",
    "keycloak_url": "KEYCLOAK_URL",
    "keycloak_realm": "KEYCLOAK_REALM",
    "backend_url": "BACKEND_URL",
    "host": "HOST",
    "port": "PORT",
    "cors_origin": "CORS_ORIGIN",
    "log_level": "LOG_LEVEL",
    "trino_host": "TRINO_HOST",
    "trino_port": "TRINO_PORT",
    "trino_catalog": "TRINO_CATALOG",
    "trino_schema": "TRINO_SCHEMA",
}


def load_settings(env_file: str | None = None) -> Settings:
    """Load settings from the environment, after applying ``.env``.

    Unset or empty variables keep their defaults.
    """
    load_dotenv(env_file)

    values = {}
    for field_name, variable in _ENVIRONMENT.items():
        value = os.getenv(variable)
        if value:
            values[field_name] = value

    settings = Settings(**values)
    logger.debug(
        f"Loaded settings: provider={settings.provider_name}, "
        f"client_id={settings.client_id}, trino={settings.trino_url}"
    )
    return settings
