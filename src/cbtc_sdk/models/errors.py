"""Error models for the CBTC SDK."""
from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class CbtcError(Exception):
    """Base exception for the CBTC SDK."""

    retryable: bool = False

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "CBTC_ERROR"
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary."""
        return {
            "error": {
                "type": type(self).__name__,
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


class TransportError(CbtcError):
    """Network failure, timeout or unreadable body while talking to a service."""

    retryable = True

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message, code="TRANSPORT_ERROR", details={"url": url})
        self.url = url


class AuthenticationError(CbtcError):
    """Credential exchange with the identity provider failed."""

    def __init__(
        self,
        message: str = "Authentication failed",
        status_code: Optional[int] = None,
        code: str = "AUTHENTICATION_ERROR",
    ):
        super().__init__(message, code=code, details={"status_code": status_code})
        self.status_code = status_code


class RefreshRejectedError(AuthenticationError):
    """The refresh token is no longer usable; a full login is required."""

    def __init__(self, message: str = "Refresh token is not active", status_code: Optional[int] = None):
        super().__init__(message, status_code=status_code, code="REFRESH_REJECTED")


class _HTTPFailure(CbtcError):
    """Shared shape for errors that may carry an HTTP status and body."""

    default_code = "HTTP_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(
            message,
            code=self.default_code,
            details={"status_code": status_code, "body": body},
        )
        self.status_code = status_code
        self.body = body

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.status_code is None or self.status_code >= 500


class RegistryError(_HTTPFailure):
    """Fetching a choice context from the registry failed."""

    default_code = "REGISTRY_ERROR"


class LedgerSubmissionError(_HTTPFailure):
    """The ledger rejected a submission or could not be reached."""

    default_code = "LEDGER_SUBMISSION_ERROR"


class LedgerQueryError(_HTTPFailure):
    """A ledger state query (ledger end, active contracts) failed."""

    default_code = "LEDGER_QUERY_ERROR"


class ParseFailure(str, Enum):
    """Why a successful ledger response could not be interpreted."""

    INVALID_JSON = "invalid_json"
    MISSING_EVENT = "missing_event"
    WRONG_CHOICE = "wrong_choice"
    MISSING_FIELD = "missing_field"
    TYPE_MISMATCH = "type_mismatch"


class ResponseParseError(CbtcError):
    """A success response from the ledger had an unexpected shape."""

    def __init__(
        self,
        message: str,
        kind: ParseFailure,
        field: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        merged = {"kind": kind.value, "field": field}
        merged.update(details or {})
        super().__init__(message, code="RESPONSE_PARSE_ERROR", details=merged)
        self.kind = kind
        self.field = field


class InsufficientHoldingsError(CbtcError):
    """No holdings are available to fund a transfer."""

    def __init__(self, message: str = "no holdings available"):
        super().__init__(message, code="INSUFFICIENT_HOLDINGS")


class ValidationError(CbtcError):
    """Invalid caller input."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, code="VALIDATION_ERROR", details={"field": field})
        self.field = field
