"""Tests for cbtc_sdk.models.errors."""
from __future__ import annotations

from cbtc_sdk.models.errors import (
    AuthenticationError,
    CbtcError,
    InsufficientHoldingsError,
    LedgerSubmissionError,
    ParseFailure,
    RefreshRejectedError,
    RegistryError,
    ResponseParseError,
    TransportError,
    ValidationError,
)


class TestCbtcError:
    """Tests for the base error."""

    def test_str_and_dict(self):
        """Should render code and message."""
        error = CbtcError("something broke", code="X", details={"a": 1})

        assert str(error) == "[X] something broke"
        assert error.to_dict() == {
            "error": {"type": "CbtcError", "code": "X", "message": "something broke", "details": {"a": 1}}
        }

    def test_hierarchy(self):
        """Should derive every SDK error from CbtcError."""
        for cls in (TransportError, AuthenticationError, RegistryError, LedgerSubmissionError, ValidationError):
            assert issubclass(cls, CbtcError)
        assert issubclass(RefreshRejectedError, AuthenticationError)


class TestHTTPFailures:
    """Tests for status-carrying errors."""

    def test_details(self):
        """Should carry status and body."""
        error = LedgerSubmissionError("rejected", status_code=409, body='{"code": "DUPLICATE"}')

        assert error.code == "LEDGER_SUBMISSION_ERROR"
        assert error.details == {"status_code": 409, "body": '{"code": "DUPLICATE"}'}

    def test_retryable(self):
        """Should treat server errors and transport failures as retryable."""
        assert RegistryError("x", status_code=503).retryable
        assert RegistryError("x").retryable
        assert not RegistryError("x", status_code=400).retryable
        assert TransportError("x").retryable
        assert not InsufficientHoldingsError().retryable


class TestResponseParseError:
    """Tests for ResponseParseError."""

    def test_kind_in_details(self):
        """Should expose kind and field in details."""
        error = ResponseParseError("bad", kind=ParseFailure.WRONG_CHOICE, details={"choices": ["A"]})

        assert error.details == {"kind": "wrong_choice", "field": None, "choices": ["A"]}
        assert error.kind is ParseFailure.WRONG_CHOICE

    def test_insufficient_holdings_message(self):
        """Should default to the no-holdings message."""
        assert InsufficientHoldingsError().message == "no holdings available"
