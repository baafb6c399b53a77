"""Registry choice-context models for the CBTC SDK."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import ConfigDict, Field

from .base import CbtcModel


class _FrozenModel(CbtcModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class DisclosedContract(_FrozenModel):
    """Opaque contract blob granting visibility to the submitting party."""

    template_id: str = Field(alias="templateId")
    contract_id: str = Field(alias="contractId")
    created_event_blob: str = Field(alias="createdEventBlob")
    synchronizer_id: Optional[str] = Field(default=None, alias="synchronizerId")


class ChoiceContextData(_FrozenModel):
    """Context values passed through to the exercised choice unchanged."""

    values: dict[str, Any] = Field(default_factory=dict)


class ChoiceContext(_FrozenModel):
    choice_context_data: ChoiceContextData = Field(alias="choiceContextData")
    disclosed_contracts: list[DisclosedContract] = Field(
        default_factory=list, alias="disclosedContracts"
    )


class TransactionContext(_FrozenModel):
    """Transfer-factory context, fetched once and shared across a batch."""

    factory_id: str = Field(alias="factoryId")
    transfer_kind: Optional[str] = Field(default=None, alias="transferKind")
    choice_context: ChoiceContext = Field(alias="choiceContext")

    @property
    def template_args(self) -> dict[str, Any]:
        return self.choice_context.choice_context_data.values

    @property
    def disclosed_contracts(self) -> list[DisclosedContract]:
        return self.choice_context.disclosed_contracts


class OfferChoiceContext(_FrozenModel):
    """Context for exercising a choice on a pending transfer instruction."""

    choice_context_data: ChoiceContextData = Field(alias="choiceContextData")
    disclosed_contracts: list[DisclosedContract] = Field(
        default_factory=list, alias="disclosedContracts"
    )
