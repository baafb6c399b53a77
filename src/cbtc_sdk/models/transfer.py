"""Transfer models for the CBTC SDK."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from pydantic import ConfigDict, Field

from ..constants import Defaults, MetaKeys
from .base import CbtcModel
from .errors import CbtcError


def rfc3339(moment: datetime) -> str:
    """Format a timestamp the way the ledger expects it."""
    return moment.astimezone(timezone.utc).isoformat()


class InstrumentId(CbtcModel):
    """Identifier of the token type being moved."""

    admin: str
    id: str = Defaults.INSTRUMENT_ID


class TransferMeta(CbtcModel):
    """Free-form string metadata attached to a transfer."""

    values: Optional[dict[str, str]] = None


class Transfer(CbtcModel):
    """A transfer description as consumed by the transfer factory."""

    sender: str
    receiver: str
    amount: str
    instrument_id: InstrumentId = Field(alias="instrumentId")
    requested_at: str = Field(alias="requestedAt")
    execute_before: str = Field(alias="executeBefore")
    input_holding_cids: Optional[list[str]] = Field(default=None, alias="inputHoldingCids")
    meta: Optional[TransferMeta] = None

    @classmethod
    def build(
        cls,
        sender: str,
        receiver: str,
        amount: str,
        instrument_id: InstrumentId,
        input_holding_cids: Optional[list[str]],
        execute_before: timedelta = timedelta(hours=Defaults.EXECUTE_BEFORE_HOURS),
        reason: str = "",
        reference: Optional[str] = None,
        tx_kind: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> "Transfer":
        """Build a transfer stamped with request time and deadline."""
        now = now or datetime.now(timezone.utc)
        values = {MetaKeys.REASON: reason}
        if tx_kind:
            values[MetaKeys.TX_KIND] = tx_kind
        if reference:
            values[MetaKeys.REFERENCE] = reference
        return cls(
            sender=sender,
            receiver=receiver,
            amount=amount,
            instrument_id=instrument_id,
            requested_at=rfc3339(now),
            execute_before=rfc3339(now + execute_before),
            input_holding_cids=list(input_holding_cids) if input_holding_cids is not None else None,
            meta=TransferMeta(values=values),
        )

    @property
    def reference(self) -> Optional[str]:
        if self.meta is None or self.meta.values is None:
            return None
        return self.meta.values.get(MetaKeys.REFERENCE)


class Recipient(CbtcModel):
    """One payee of a batch. Input only, never mutated."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    receiver: str
    amount: str
    reference: Optional[str] = None


@dataclass(frozen=True)
class TransferResult:
    """Outcome of one recipient's transfer within a chain.

    Attributes:
        index: Position of the recipient in the input list
        receiver: Receiving party
        amount: Amount as given by the caller
        success: Whether the transfer was confirmed and parsed
        change_ids: Change holdings produced by the transfer
        instruction_id: Identifier of the created transfer instruction or output holding
        update_id: Ledger update identifier
        reference: Idempotency reference carried in the transfer metadata
        raw_response: Raw ledger response body, when one was received
        error: The typed error, for failed items
        receiver_holding_ids: Holdings created for the receiver (self-transfers)
    """

    index: int
    receiver: str
    amount: str
    success: bool
    change_ids: tuple[str, ...] = ()
    instruction_id: Optional[str] = None
    update_id: Optional[str] = None
    reference: Optional[str] = None
    raw_response: Optional[str] = None
    error: Optional[CbtcError] = None
    receiver_holding_ids: tuple[str, ...] = field(default=())

    @property
    def is_failed(self) -> bool:
        return not self.success

    @property
    def error_type(self) -> Optional[str]:
        return type(self.error).__name__ if self.error is not None else None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation (raw response omitted)."""
        result: dict[str, Any] = {
            "index": self.index,
            "receiver": self.receiver,
            "amount": self.amount,
            "success": self.success,
        }
        if self.change_ids:
            result["change_ids"] = list(self.change_ids)
        if self.instruction_id is not None:
            result["instruction_id"] = self.instruction_id
        if self.update_id is not None:
            result["update_id"] = self.update_id
        if self.reference is not None:
            result["reference"] = self.reference
        if self.receiver_holding_ids:
            result["receiver_holding_ids"] = list(self.receiver_holding_ids)
        if self.error is not None:
            result["error"] = self.error.to_dict()["error"]
        return result
