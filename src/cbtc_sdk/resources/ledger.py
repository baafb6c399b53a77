"""Ledger JSON API resource for the CBTC SDK."""
from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from ..models.errors import LedgerQueryError, LedgerSubmissionError
from ..models.ledger import ActiveContract, LedgerEnd
from ..models.submission import Submission
from .base import AsyncBaseResource, bearer

logger = logging.getLogger(__name__)


def interface_filter(interface_id: str) -> dict[str, Any]:
    """Identifier filter matching contracts implementing an interface."""
    return {
        "InterfaceFilter": {
            "value": {
                "interfaceId": interface_id,
                "includeInterfaceView": True,
                "includeCreatedEventBlob": True,
            }
        }
    }


def template_filter(template_id: str) -> dict[str, Any]:
    """Identifier filter matching contracts of one template."""
    return {
        "TemplateFilter": {
            "value": {
                "templateId": template_id,
                "includeCreatedEventBlob": True,
            }
        }
    }


class LedgerResource(AsyncBaseResource):
    """Command submission and state queries."""

    error_cls = LedgerQueryError

    async def submit_and_wait(self, submission: Submission, access_token: str) -> str:
        """Submit commands and wait for the transaction tree.

        Never retried: a resubmission after an ambiguous failure could
        spend the same holdings twice under a new command id.

        Returns:
            The raw response body

        Raises:
            LedgerSubmissionError: On non-2xx status or transport failure
        """
        response = await self._send(
            "POST",
            f"{self._client.ledger_host}/v2/commands/submit-and-wait-for-transaction-tree",
            json=submission.to_request(),
            headers=bearer(access_token),
            retry=False,
            error_cls=LedgerSubmissionError,
        )
        return response.text

    async def ledger_end(self, access_token: str) -> int:
        """Return the current ledger end offset."""
        payload = await self._get(
            f"{self._client.ledger_host}/v2/state/ledger-end",
            headers=bearer(access_token),
        )
        try:
            return LedgerEnd.model_validate(payload).offset
        except PydanticValidationError as e:
            raise LedgerQueryError("Malformed ledger-end response", body=str(payload)) from e

    async def active_contracts(
        self,
        party: str,
        access_token: str,
        identifier_filter: dict[str, Any],
        offset: Optional[int] = None,
    ) -> list[ActiveContract]:
        """List active contracts visible to a party at an offset.

        Args:
            party: Party whose contracts to list
            access_token: Bearer credential
            identifier_filter: One of ``interface_filter`` / ``template_filter``
            offset: Snapshot offset, defaults to the current ledger end
        """
        if offset is None:
            offset = await self.ledger_end(access_token)

        body = {
            "filter": {
                "filtersByParty": {
                    party: {"cumulative": [{"identifierFilter": identifier_filter}]},
                },
            },
            "verbose": False,
            "activeAtOffset": offset,
        }
        payload = await self._post(
            f"{self._client.ledger_host}/v2/state/active-contracts",
            data=body,
            headers=bearer(access_token),
        )
        if not isinstance(payload, list):
            raise LedgerQueryError("Active contracts response is not a list", body=str(payload)[:500])

        contracts = []
        for entry in payload:
            active = (entry.get("contractEntry") or {}).get("JsActiveContract") if isinstance(entry, dict) else None
            if active is None:
                # Incomplete assignments and unassigned entries
                logger.debug("Skipping non-active contract entry")
                continue
            try:
                contracts.append(ActiveContract.model_validate(active))
            except PydanticValidationError as e:
                raise LedgerQueryError("Malformed active contract entry") from e

        logger.debug("Fetched %d active contract(s) for %s at offset %d", len(contracts), party, offset)
        return contracts
