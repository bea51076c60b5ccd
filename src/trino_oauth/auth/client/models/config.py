"""Normalized identity provider configuration.

Every provider is reduced to one ``ProviderConfig`` record by a small
factory function. The rest of the client only ever sees this record.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

DEFAULT_SCOPE = "openid profile email"
DEFAULT_REDIRECT_URI = "http://localhost:5173/callback"


class ProviderConfig(BaseModel):
    """Endpoints and client registration for one OAuth 2.0 provider."""

    name: str = "OAuth2 Provider"
    authorization_endpoint: str = Field(min_length=1)
    token_endpoint: str = Field(min_length=1)
    client_id: str = Field(min_length=1)
    redirect_uri: str = DEFAULT_REDIRECT_URI
    scope: str = DEFAULT_SCOPE
    uses_pkce: bool = True


def google(
    client_id: str, redirect_uri: str = DEFAULT_REDIRECT_URI, **kwargs
) -> ProviderConfig:
    return ProviderConfig(
        name="Google",
        authorization_endpoint="https://accounts.google.com/o/oauth2/v2/auth",
        token_endpoint="https://oauth2.googleapis.com/token",
        client_id=client_id,
        redirect_uri=redirect_uri,
        **kwargs,
    )


def github(
    client_id: str, redirect_uri: str = DEFAULT_REDIRECT_URI, **kwargs
) -> ProviderConfig:
    kwargs.setdefault("scope", "read:user user:email")
    return ProviderConfig(
        name="GitHub",
        authorization_endpoint="https://github.com/login/oauth/authorize",
        token_endpoint="https://github.com/login/oauth/access_token",
        client_id=client_id,
        redirect_uri=redirect_uri,
        **kwargs,
    )


def auth0(
    domain: str, client_id: str, redirect_uri: str = DEFAULT_REDIRECT_URI, **kwargs
) -> ProviderConfig:
    return ProviderConfig(
        name="Auth0",
        authorization_endpoint=f"https://{domain}/authorize",
        token_endpoint=f"https://{domain}/oauth/token",
        client_id=client_id,
        redirect_uri=redirect_uri,
        **kwargs,
    )


def keycloak(
    base_url: str,
    realm: str,
    client_id: str,
    redirect_uri: str = DEFAULT_REDIRECT_URI,
    **kwargs,
) -> ProviderConfig:
    realm_url = f"{base_url.rstrip('/')}/realms/{realm}/protocol/openid-connect"
    return ProviderConfig(
        name="Keycloak",
        authorization_endpoint=f"{realm_url}/auth",
        token_endpoint=f"{realm_url}/token",
        client_id=client_id,
        redirect_uri=redirect_uri,
        **kwargs,
    )


def generic(
    authorization_endpoint: str,
    token_endpoint: str,
    client_id: str,
    redirect_uri: str = DEFAULT_REDIRECT_URI,
    **kwargs,
) -> ProviderConfig:
    return ProviderConfig(
        authorization_endpoint=authorization_endpoint,
        token_endpoint=token_endpoint,
        client_id=client_id,
        redirect_uri=redirect_uri,
        **kwargs,
    )


def provider_config(
    name: str,
    client_id: str,
    redirect_uri: str = DEFAULT_REDIRECT_URI,
    *,
    authorization_endpoint: str | None = None,
    token_endpoint: str | None = None,
    domain: str | None = None,
    base_url: str | None = None,
    realm: str | None = None,
    scope: str | None = None,
) -> ProviderConfig:
    """Build a ``ProviderConfig`` for a provider name.

    Explicit endpoints always win and produce a generic provider. Unknown
    names fall back to Google.

    Raises:
        ValueError: If a named provider is missing its required settings
    """
    extra = {"scope": scope} if scope else {}
    name = (name or "").lower()

    if authorization_endpoint and token_endpoint:
        return generic(
            authorization_endpoint, token_endpoint, client_id, redirect_uri, **extra
        )

    if name == "github":
        return github(client_id, redirect_uri, **extra)
    if name == "auth0":
        if not domain:
            raise ValueError("Auth0 provider requires a domain")
        return auth0(domain, client_id, redirect_uri, **extra)
    if name == "keycloak":
        if not base_url or not realm:
            raise ValueError("Keycloak provider requires a base URL and realm")
        return keycloak(base_url, realm, client_id, redirect_uri, **extra)

    return google(client_id, redirect_uri, **extra)
