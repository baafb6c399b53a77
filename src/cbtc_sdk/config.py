"""Configuration surface for CBTC SDK tools."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import DecentralizedParties, Defaults
from .models.auth import ClientCredentialsGrant, Grant, PasswordGrant


class CbtcSettings(BaseSettings):
    """Connection, credential and tuning settings, read from ``CBTC_*`` variables."""

    model_config = SettingsConfigDict(
        env_prefix="CBTC_",
        env_file=".env",
        extra="ignore",
    )

    # Network
    environment: Literal["devnet", "testnet", "mainnet"] = "devnet"
    ledger_host: str = "http://localhost:7575"
    registry_url: str = "http://localhost:8080"

    # Parties and instrument
    party_id: str = ""
    decentralized_party_id: str = ""
    instrument_id: str = Defaults.INSTRUMENT_ID

    # Identity provider
    keycloak_host: str = "http://localhost:8082"
    keycloak_realm: str = "canton"
    keycloak_client_id: str = ""
    keycloak_username: str = ""
    keycloak_password: str = ""
    keycloak_client_secret: str = ""
    token_refresh_margin_seconds: int = Defaults.TOKEN_REFRESH_MARGIN

    # HTTP
    request_timeout: float = Defaults.HTTP_TIMEOUT
    max_retries: int = Defaults.MAX_RETRIES

    # Transfers
    execute_before_hours: int = Defaults.EXECUTE_BEFORE_HOURS
    context_execute_before_hours: int = Defaults.CONTEXT_EXECUTE_BEFORE_HOURS
    accept_batch_size: int = Defaults.OFFER_BATCH_SIZE
    consolidation_threshold: int = Defaults.CONSOLIDATION_THRESHOLD

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    @field_validator("ledger_host", "registry_url", "keycloak_host")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("accept_batch_size", "max_retries")
    @classmethod
    def validate_non_negative(cls, v: int, info) -> int:
        if v < 0 or (info.field_name == "accept_batch_size" and v == 0):
            raise ValueError(f"{info.field_name} must be positive")
        return v

    @model_validator(mode="after")
    def default_decentralized_party(self) -> "CbtcSettings":
        if not self.decentralized_party_id:
            self.decentralized_party_id = DecentralizedParties.for_environment(self.environment)
        return self

    @property
    def token_url(self) -> str:
        return (
            f"{self.keycloak_host}/auth/realms/{self.keycloak_realm}"
            "/protocol/openid-connect/token"
        )

    def grant(self) -> Grant:
        """Pick the credential grant: client credentials when a secret is set."""
        if self.keycloak_client_secret:
            return ClientCredentialsGrant(
                client_id=self.keycloak_client_id,
                client_secret=self.keycloak_client_secret,
            )
        return PasswordGrant(
            client_id=self.keycloak_client_id,
            username=self.keycloak_username,
            password=self.keycloak_password,
        )


@lru_cache
def get_settings(env_file: Optional[str] = None) -> CbtcSettings:
    """Load CbtcSettings once per process."""
    env_path = Path(env_file) if env_file else None
    if env_path is None:
        return CbtcSettings()
    return CbtcSettings(_env_file=env_path)
