"""Fetches the transfer-factory context shared by every transfer in a batch."""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional, Sequence

from .constants import Defaults
from .logging_utils import short_id
from .models.registry import TransactionContext
from .models.transfer import InstrumentId, Recipient, Transfer
from .resources.registry import RegistryResource

logger = logging.getLogger(__name__)


class ContextFetcher:
    """Fetches a ``TransactionContext`` once per batch.

    The context is not cached here; callers that want to reuse one across
    batches hold on to it and pass it to the chain executor.
    """

    def __init__(
        self,
        registry: RegistryResource,
        admin: str,
        execute_before: timedelta = timedelta(hours=Defaults.CONTEXT_EXECUTE_BEFORE_HOURS),
    ) -> None:
        self._registry = registry
        self._admin = admin
        self._execute_before = execute_before

    def representative_transfer(
        self,
        sender: str,
        recipient: Recipient,
        instrument_id: InstrumentId,
        holdings: Optional[Sequence[str]],
    ) -> Transfer:
        """Shape the request with the first recipient and the initial pool."""
        return Transfer.build(
            sender=sender,
            receiver=recipient.receiver,
            amount=recipient.amount,
            instrument_id=instrument_id,
            input_holding_cids=list(holdings) if holdings is not None else None,
            execute_before=self._execute_before,
        )

    async def fetch(self, representative: Transfer) -> TransactionContext:
        """Fetch the context for ``representative``.

        Raises:
            RegistryError: On non-success response or malformed payload
        """
        context = await self._registry.transfer_factory(self._admin, representative)
        logger.debug(
            "Fetched transfer context: factory=%s, %d disclosed contract(s)",
            short_id(context.factory_id),
            len(context.disclosed_contracts),
        )
        return context
