"""
Centralized constants for the CBTC SDK.

Template identifiers, well-known parties, metadata keys and default
timings used when building ledger commands.

Usage:
    from cbtc_sdk.constants import Templates, MetaKeys, Defaults
"""
from __future__ import annotations

from typing import Final


# =============================================================================
# Network Parties
# =============================================================================

class DecentralizedParties:
    """Well-known decentralized (admin) party of the CBTC instrument per network."""

    MAINNET: Final[str] = (
        "cbtc-network::12205af3b949a04776fc48cdcc05a060f6bda2e470632935f375d1049a8546a3b262"
    )
    TESTNET: Final[str] = (
        "cbtc-network::12201b1741b63e2494e4214cf0bedc3d5a224da53b3bf4d76dba468f8e97eb15508f"
    )
    DEVNET: Final[str] = (
        "cbtc-network::12202a83c6f4082217c175e29bc53da5f2703ba2675778ab99217a5a881a949203ff"
    )

    @classmethod
    def for_environment(cls, environment: str) -> str:
        return {
            "mainnet": cls.MAINNET,
            "testnet": cls.TESTNET,
            "devnet": cls.DEVNET,
        }[environment]


# =============================================================================
# Ledger Templates and Interfaces
# =============================================================================

class Templates:
    """Template and interface identifiers used in commands and filters."""

    TRANSFER_FACTORY: Final[str] = (
        "#splice-api-token-transfer-instruction-v1:"
        "Splice.Api.Token.TransferInstructionV1:TransferFactory"
    )
    TRANSFER_INSTRUCTION: Final[str] = (
        "#splice-api-token-transfer-instruction-v1:"
        "Splice.Api.Token.TransferInstructionV1:TransferInstruction"
    )
    TRANSFER_OFFER: Final[str] = (
        "#utility-registry-app-v0:Utility.Registry.App.V0.Model.Transfer:TransferOffer"
    )
    HOLDING_INTERFACE: Final[str] = (
        "#splice-api-token-holding-v1:Splice.Api.Token.HoldingV1:Holding"
    )


class Choices:
    """Choice names exercised by this SDK."""

    TRANSFER: Final[str] = "TransferFactory_Transfer"
    ACCEPT: Final[str] = "TransferInstruction_Accept"
    WITHDRAW: Final[str] = "TransferInstruction_Withdraw"


class MetaKeys:
    """Transfer metadata keys."""

    REASON: Final[str] = "splice.lfdecentralizedtrust.org/reason"
    REFERENCE: Final[str] = "splice.lfdecentralizedtrust.org/reference"
    TX_KIND: Final[str] = "splice.lfdecentralizedtrust.org/tx-kind"

    MERGE_SPLIT: Final[str] = "merge-split"


# =============================================================================
# Defaults
# =============================================================================

class Defaults:
    """Default values for timing, batching and retries."""

    INSTRUMENT_ID: Final[str] = "CBTC"

    # Execution deadlines (hours)
    EXECUTE_BEFORE_HOURS: Final[int] = 168
    CONTEXT_EXECUTE_BEFORE_HOURS: Final[int] = 30 * 24
    SELF_TRANSFER_EXECUTE_BEFORE_HOURS: Final[int] = 5

    # Credential refresh safety margin (seconds)
    TOKEN_REFRESH_MARGIN: Final[int] = 60

    # Bulk offer operations
    OFFER_BATCH_SIZE: Final[int] = 5

    # Soft limit of holdings per party per instrument
    CONSOLIDATION_THRESHOLD: Final[int] = 10

    # Ledger numeric precision (Numeric 10)
    AMOUNT_DECIMALS: Final[int] = 10

    # HTTP
    HTTP_TIMEOUT: Final[float] = 30.0
    MAX_RETRIES: Final[int] = 3
    USER_AGENT: Final[str] = "cbtc-sdk-python/0.1.0"


class LoggingConfig:
    """Logging-related constants."""

    SENSITIVE_FIELDS: Final[frozenset[str]] = frozenset({
        "password",
        "secret",
        "token",
        "client_secret",
        "access_token",
        "accessToken",
        "refresh_token",
        "refreshToken",
        "authorization",
        "credential",
        "credentials",
    })

    MASK_PATTERN: Final[str] = "***REDACTED***"

    MAX_LOG_MESSAGE_LENGTH: Final[int] = 10000

    # Raw ledger responses can be large
    MAX_RESPONSE_BODY_LOG_LENGTH: Final[int] = 500
