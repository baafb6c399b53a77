"""
CBTC Python SDK

Chained CBTC transfers on a Canton ledger: pay many recipients from one
holding by feeding each transaction's change into the next.
"""

from .batch import BatchController
from .chain import ChainExecutor, generate_unique_reference
from .client import CbtcClient
from .config import CbtcSettings, get_settings
from .consolidate import ConsolidationResult, check_and_consolidate, consolidate_holdings
from .context import ContextFetcher
from .distribute import distribute
from .extract import ExtractedTransfer, ResponseExtractor
from .holdings import count_holdings, holding_amount, list_holdings
from .models.errors import (
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
from .models.offer import OfferResult, PendingOffer
from .models.registry import TransactionContext
from .models.transfer import InstrumentId, Recipient, Transfer, TransferResult
from .offers import accept_all, list_incoming_offers, list_outgoing_offers, withdraw_all
from .recipients import load_recipients_csv
from .results import BatchOutcome, ResultAggregator, TransferObserver
from .session import CredentialSession
from .split import SplitResult, split_holdings
from .transfer import send

__version__ = "0.1.0"

__all__ = [
    # Client and configuration
    "CbtcClient",
    "CbtcSettings",
    "get_settings",
    "CredentialSession",
    # Engine
    "ContextFetcher",
    "ChainExecutor",
    "ResponseExtractor",
    "ExtractedTransfer",
    "ResultAggregator",
    "BatchOutcome",
    "TransferObserver",
    "BatchController",
    "generate_unique_reference",
    # Operations
    "distribute",
    "send",
    "load_recipients_csv",
    "list_holdings",
    "count_holdings",
    "holding_amount",
    "consolidate_holdings",
    "check_and_consolidate",
    "ConsolidationResult",
    "split_holdings",
    "SplitResult",
    "list_incoming_offers",
    "list_outgoing_offers",
    "accept_all",
    "withdraw_all",
    # Models
    "InstrumentId",
    "Recipient",
    "Transfer",
    "TransferResult",
    "TransactionContext",
    "PendingOffer",
    "OfferResult",
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
]
