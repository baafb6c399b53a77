"""Token-standard registry resource for the CBTC SDK."""
from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..models.errors import RegistryError
from ..models.registry import OfferChoiceContext, TransactionContext
from ..models.transfer import Transfer
from .base import AsyncBaseResource

logger = logging.getLogger(__name__)


class RegistryResource(AsyncBaseResource):
    """Choice contexts served by the instrument registry."""

    error_cls = RegistryError

    def _instruction_base(self, admin: str) -> str:
        return (
            f"{self._client.registry_url}/api/token-standard/v0/registrars/{admin}"
            "/registry/transfer-instruction/v1"
        )

    async def transfer_factory(self, admin: str, transfer: Transfer) -> TransactionContext:
        """Fetch the transfer-factory context for a representative transfer.

        Args:
            admin: Decentralized party administering the instrument
            transfer: Transfer used only to shape the request

        Returns:
            Factory id, choice-context values and disclosed contracts

        Raises:
            RegistryError: On non-2xx, transport failure or malformed payload
        """
        body = {
            "choiceArguments": {
                "expectedAdmin": admin,
                "transfer": transfer.to_dict(),
                "extraArgs": {
                    "context": {"values": {}},
                    "meta": {"values": {}},
                },
            },
            "excludeDebugFields": True,
        }
        payload = await self._post(f"{self._instruction_base(admin)}/transfer-factory", data=body)
        return self._validate(TransactionContext, payload)

    async def accept_context(self, admin: str, contract_id: str) -> OfferChoiceContext:
        """Fetch the choice context for exercising a pending transfer instruction."""
        payload = await self._post(
            f"{self._instruction_base(admin)}/{contract_id}/choice-contexts/accept",
            data={"meta": {"values": ""}},
        )
        return self._validate(OfferChoiceContext, payload)

    def _validate(self, model: Any, payload: Any) -> Any:
        try:
            return model.model_validate(payload)
        except PydanticValidationError as e:
            raise RegistryError(f"Malformed {model.__name__} payload: {e.error_count()} error(s)") from e
