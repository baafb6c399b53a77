"""Models for the CBTC SDK."""
from .auth import ClientCredentialsGrant, Grant, PasswordGrant, TokenResponse
from .base import CbtcModel
from .errors import (
    AuthenticationError,
    CbtcError,
    InsufficientHoldingsError,
    LedgerQueryError,
    LedgerSubmissionError,
    ParseFailure,
    RefreshRejectedError,
    RegistryError,
    ResponseParseError,
    TransportError,
    ValidationError,
)
from .ledger import ActiveContract, CreatedEvent, InterfaceView
from .offer import OfferResult, PendingOffer
from .registry import (
    ChoiceContext,
    ChoiceContextData,
    DisclosedContract,
    OfferChoiceContext,
    TransactionContext,
)
from .submission import ExerciseCommand, Submission
from .transfer import InstrumentId, Recipient, Transfer, TransferMeta, TransferResult

__all__ = [
    "CbtcModel",
    # Auth
    "TokenResponse",
    "PasswordGrant",
    "ClientCredentialsGrant",
    "Grant",
    # Errors
    "CbtcError",
    "TransportError",
    "AuthenticationError",
    "RefreshRejectedError",
    "RegistryError",
    "LedgerSubmissionError",
    "LedgerQueryError",
    "ParseFailure",
    "ResponseParseError",
    "InsufficientHoldingsError",
    "ValidationError",
    # Ledger
    "ActiveContract",
    "CreatedEvent",
    "InterfaceView",
    # Offers
    "PendingOffer",
    "OfferResult",
    # Registry
    "DisclosedContract",
    "ChoiceContextData",
    "ChoiceContext",
    "TransactionContext",
    "OfferChoiceContext",
    # Submission
    "ExerciseCommand",
    "Submission",
    # Transfer
    "InstrumentId",
    "TransferMeta",
    "Transfer",
    "Recipient",
    "TransferResult",
]
