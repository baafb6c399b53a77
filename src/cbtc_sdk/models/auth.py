"""Identity provider models for the CBTC SDK."""
from __future__ import annotations

from typing import Union

from pydantic import BaseModel, ConfigDict

from .base import CbtcModel


class TokenResponse(CbtcModel):
    """Token grant response (password, refresh or client-credentials)."""

    access_token: str
    expires_in: int = 0
    refresh_token: str = ""


class PasswordGrant(BaseModel):
    """Long-lived user credentials for the password grant."""

    model_config = ConfigDict(frozen=True)

    client_id: str
    username: str
    password: str


class ClientCredentialsGrant(BaseModel):
    """Machine identity credentials for the client-credentials grant."""

    model_config = ConfigDict(frozen=True)

    client_id: str
    client_secret: str


Grant = Union[PasswordGrant, ClientCredentialsGrant]
