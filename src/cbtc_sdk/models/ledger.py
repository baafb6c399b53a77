"""Typed partial views of ledger JSON API responses.

Only the fields the SDK actually reads are declared; everything else is
ignored so upstream additions do not break parsing.
"""
from __future__ import annotations

from typing import Any, Optional

from pydantic import Field, StrictStr

from .base import CbtcModel


# =============================================================================
# Transaction trees (submit-and-wait responses)
# =============================================================================

class ExercisedEventValue(CbtcModel):
    choice: StrictStr
    exercise_result: Any = Field(default=None, alias="exerciseResult")


class TransactionTree(CbtcModel):
    update_id: StrictStr = Field(alias="updateId")
    events_by_id: dict[str, dict[str, Any]] = Field(alias="eventsById")


class TransactionTreeResponse(CbtcModel):
    transaction_tree: TransactionTree = Field(alias="transactionTree")


class TransferOutputValue(CbtcModel):
    transfer_instruction_cid: Optional[StrictStr] = Field(
        default=None, alias="transferInstructionCid"
    )
    receiver_holding_cids: Optional[list[StrictStr]] = Field(
        default=None, alias="receiverHoldingCids"
    )


class TransferOutput(CbtcModel):
    value: TransferOutputValue = Field(default_factory=TransferOutputValue)


class TransferExerciseResult(CbtcModel):
    sender_change_cids: list[StrictStr] = Field(alias="senderChangeCids")
    output: TransferOutput = Field(default_factory=TransferOutput)


# =============================================================================
# Active contracts
# =============================================================================

class LedgerEnd(CbtcModel):
    offset: int


class InterfaceView(CbtcModel):
    interface_id: Optional[str] = Field(default=None, alias="interfaceId")
    view_value: Optional[dict[str, Any]] = Field(default=None, alias="viewValue")


class CreatedEvent(CbtcModel):
    contract_id: str = Field(alias="contractId")
    template_id: Optional[str] = Field(default=None, alias="templateId")
    create_argument: Optional[dict[str, Any]] = Field(default=None, alias="createArgument")
    interface_views: list[InterfaceView] = Field(default_factory=list, alias="interfaceViews")
    created_event_blob: Optional[str] = Field(default=None, alias="createdEventBlob")


class ActiveContract(CbtcModel):
    created_event: CreatedEvent = Field(alias="createdEvent")
    synchronizer_id: Optional[str] = Field(default=None, alias="synchronizerId")

    @property
    def contract_id(self) -> str:
        return self.created_event.contract_id
