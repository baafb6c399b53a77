"""Identity provider resource for the CBTC SDK."""
from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..logging_utils import mask_sensitive_data
from ..models.auth import ClientCredentialsGrant, Grant, PasswordGrant, TokenResponse
from ..models.errors import AuthenticationError, RefreshRejectedError, TransportError
from .base import AsyncBaseResource

logger = logging.getLogger(__name__)

# OAuth2 error code for an expired, revoked or unknown refresh token
INVALID_GRANT = "invalid_grant"


class IdentityResource(AsyncBaseResource):
    """Token grants against the Keycloak token endpoint."""

    error_cls = AuthenticationError  # type: ignore[assignment]

    async def password(self, grant: PasswordGrant) -> TokenResponse:
        """Exchange a username and password for a token pair."""
        return await self._exchange({
            "grant_type": "password",
            "client_id": grant.client_id,
            "username": grant.username,
            "password": grant.password,
        })

    async def client_credentials(self, grant: ClientCredentialsGrant) -> TokenResponse:
        """Exchange a client id and secret for an access token."""
        return await self._exchange({
            "grant_type": "client_credentials",
            "client_id": grant.client_id,
            "client_secret": grant.client_secret,
        })

    async def refresh(self, client_id: str, refresh_token: str) -> TokenResponse:
        """Exchange a refresh token for a new token pair.

        Raises:
            RefreshRejectedError: The refresh token is no longer usable
            AuthenticationError: Any other failure
        """
        return await self._exchange(
            {
                "grant_type": "refresh_token",
                "client_id": client_id,
                "refresh_token": refresh_token,
            },
            is_refresh=True,
        )

    async def login(self, grant: Grant) -> TokenResponse:
        """Run the full credential exchange for either grant type."""
        if isinstance(grant, ClientCredentialsGrant):
            return await self.client_credentials(grant)
        return await self.password(grant)

    async def _exchange(self, form: dict[str, str], is_refresh: bool = False) -> TokenResponse:
        grant_type = form["grant_type"]
        logger.debug("Requesting %s grant: %s", grant_type, mask_sensitive_data(form))
        try:
            response = await self._client._request("POST", self._client.token_url, data=form)
        except TransportError as e:
            raise AuthenticationError(f"{grant_type} grant failed: {e.message}") from e

        if not response.is_success:
            error = _oauth_error(response)
            logger.debug("%s grant rejected (%s): %s", grant_type, response.status_code, mask_sensitive_data(error))
            if is_refresh and response.status_code in (400, 401) and error.get("error") == INVALID_GRANT:
                raise RefreshRejectedError(
                    error.get("error_description") or "Refresh token is not active",
                    status_code=response.status_code,
                )
            raise AuthenticationError(
                f"{grant_type} grant failed: "
                f"{error.get('error_description') or error.get('error') or response.status_code}",
                status_code=response.status_code,
            )

        try:
            token = TokenResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise AuthenticationError(
                f"{grant_type} grant returned an unreadable token response",
                status_code=response.status_code,
            ) from e

        logger.debug("%s grant succeeded, expires_in=%ss", grant_type, token.expires_in)
        return token


def _oauth_error(response: Any) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
