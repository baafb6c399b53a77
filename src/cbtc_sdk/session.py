"""
Credential session with pre-emptive refresh.

A ``CredentialSession`` is owned by exactly one running batch. It holds
the access/refresh token pair and the instant after which the access
token must no longer be used, and hands out a valid access token on
every ``ensure_fresh()`` call.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from .constants import Defaults
from .models.auth import ClientCredentialsGrant, Grant, TokenResponse
from .models.errors import RefreshRejectedError
from .resources.identity import IdentityResource

logger = logging.getLogger(__name__)


class CredentialSession:
    """Single-owner token state with refresh and full-login fallback.

    Args:
        identity: Identity resource used for token grants
        grant: Long-lived credentials used for full logins
        margin: Seconds subtracted from ``expires_in`` to absorb clock skew
        clock: Returns the current time in seconds
    """

    def __init__(
        self,
        identity: IdentityResource,
        grant: Grant,
        margin: int = Defaults.TOKEN_REFRESH_MARGIN,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._identity = identity
        self._grant = grant
        self._margin = margin
        self._clock = clock
        self.access_token: Optional[str] = None
        self.refresh_token: str = ""
        self.expires_at: float = 0.0

    @classmethod
    def from_token(
        cls,
        identity: IdentityResource,
        grant: Grant,
        token: TokenResponse,
        margin: int = Defaults.TOKEN_REFRESH_MARGIN,
        clock: Callable[[], float] = time.time,
    ) -> "CredentialSession":
        """Start a session from a token obtained elsewhere."""
        session = cls(identity, grant, margin=margin, clock=clock)
        session._apply(token)
        return session

    @property
    def is_expired(self) -> bool:
        return self.access_token is None or self._clock() >= self.expires_at

    async def ensure_fresh(self) -> str:
        """Return a usable access token, refreshing or logging in when due.

        Raises:
            AuthenticationError: Neither refresh nor full login succeeded
        """
        if not self.is_expired:
            return self.access_token  # type: ignore[return-value]

        if self.access_token is None or not self.refresh_token:
            await self.login()
            return self.access_token  # type: ignore[return-value]

        try:
            token = await self._identity.refresh(self._grant.client_id, self.refresh_token)
        except RefreshRejectedError as e:
            logger.info("Refresh token rejected (%s), logging in again", e.message)
            await self.login()
        else:
            logger.debug("Access token refreshed")
            self._apply(token)

        return self.access_token  # type: ignore[return-value]

    async def login(self) -> TokenResponse:
        """Run a full credential exchange with the long-lived grant."""
        token = await self._identity.login(self._grant)
        kind = "client credentials" if isinstance(self._grant, ClientCredentialsGrant) else "password"
        logger.debug("Logged in with %s grant", kind)
        self._apply(token)
        return token

    def _apply(self, token: TokenResponse) -> None:
        self.access_token = token.access_token
        # client-credentials responses carry no refresh token
        self.refresh_token = token.refresh_token
        self.expires_at = self._clock() + max(token.expires_in - self._margin, 0)
