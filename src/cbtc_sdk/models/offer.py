"""Pending transfer offer models for the CBTC SDK."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .errors import CbtcError
from .ledger import ActiveContract


@dataclass(frozen=True)
class PendingOffer:
    """A transfer instruction awaiting accept or withdraw."""

    contract_id: str
    sender: Optional[str] = None
    receiver: Optional[str] = None
    amount: Optional[str] = None
    requested_at: Optional[str] = None
    execute_before: Optional[str] = None

    @classmethod
    def from_contract(cls, contract: ActiveContract) -> "PendingOffer":
        transfer = (contract.created_event.create_argument or {}).get("transfer") or {}
        return cls(
            contract_id=contract.contract_id,
            sender=transfer.get("sender"),
            receiver=transfer.get("receiver"),
            amount=transfer.get("amount"),
            requested_at=transfer.get("requestedAt"),
            execute_before=transfer.get("executeBefore"),
        )


@dataclass(frozen=True)
class OfferResult:
    """Outcome of accepting or withdrawing one pending offer."""

    index: int
    contract_id: str
    success: bool
    amount: Optional[str] = None
    counterparty: Optional[str] = None
    update_id: Optional[str] = None
    error: Optional[CbtcError] = None

    @property
    def is_failed(self) -> bool:
        return not self.success

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "index": self.index,
            "contract_id": self.contract_id,
            "success": self.success,
        }
        if self.amount is not None:
            result["amount"] = self.amount
        if self.counterparty is not None:
            result["counterparty"] = self.counterparty
        if self.update_id is not None:
            result["update_id"] = self.update_id
        if self.error is not None:
            result["error"] = self.error.to_dict()["error"]
        return result
