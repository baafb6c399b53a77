"""Ledger command submission models for the CBTC SDK."""
from __future__ import annotations

import uuid
from typing import Any

from pydantic import Field

from ..constants import Choices, Templates
from .base import CbtcModel
from .registry import DisclosedContract, OfferChoiceContext, TransactionContext
from .transfer import Transfer


class ExerciseCommand(CbtcModel):
    """Exercise a named choice on a contract."""

    template_id: str = Field(alias="templateId")
    contract_id: str = Field(alias="contractId")
    choice: str
    choice_argument: dict[str, Any] = Field(alias="choiceArgument")

    def to_command(self) -> dict[str, Any]:
        return {"ExerciseCommand": self.to_dict()}


class Submission(CbtcModel):
    """A single ledger transaction made of one or more commands."""

    act_as: list[str] = Field(alias="actAs")
    command_id: str = Field(default_factory=lambda: str(uuid.uuid4()), alias="commandId")
    disclosed_contracts: list[DisclosedContract] = Field(
        default_factory=list, alias="disclosedContracts"
    )
    commands: list[ExerciseCommand] = Field(default_factory=list)

    def to_request(self) -> dict[str, Any]:
        """Render the JSON body for submit-and-wait."""
        return {
            "actAs": list(self.act_as),
            "commandId": self.command_id,
            "disclosedContracts": [d.to_dict() for d in self.disclosed_contracts],
            "commands": [c.to_command() for c in self.commands],
        }


def _extra_args(values: dict[str, Any]) -> dict[str, Any]:
    return {"context": {"values": values}, "meta": {"values": {}}}


def transfer_choice_arguments(
    admin: str,
    transfer: Transfer,
    context_values: dict[str, Any],
) -> dict[str, Any]:
    return {
        "expectedAdmin": admin,
        "transfer": transfer.to_dict(),
        "extraArgs": _extra_args(context_values),
    }


def transfer_command(
    context: TransactionContext,
    admin: str,
    transfer: Transfer,
) -> ExerciseCommand:
    """Exercise the transfer factory with the batch-shared context."""
    return ExerciseCommand(
        template_id=Templates.TRANSFER_FACTORY,
        contract_id=context.factory_id,
        choice=Choices.TRANSFER,
        choice_argument=transfer_choice_arguments(admin, transfer, context.template_args),
    )


def transfer_submission(
    context: TransactionContext,
    admin: str,
    transfer: Transfer,
) -> Submission:
    return Submission(
        act_as=[transfer.sender],
        disclosed_contracts=list(context.disclosed_contracts),
        commands=[transfer_command(context, admin, transfer)],
    )


def instruction_command(
    contract_id: str,
    choice: str,
    context: OfferChoiceContext,
) -> ExerciseCommand:
    """Exercise accept/withdraw on a pending transfer instruction."""
    return ExerciseCommand(
        template_id=Templates.TRANSFER_INSTRUCTION,
        contract_id=contract_id,
        choice=choice,
        choice_argument={"extraArgs": _extra_args(context.choice_context_data.values)},
    )
