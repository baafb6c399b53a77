"""Pay many recipients from one sender's holdings."""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Optional, Sequence

from .chain import ChainExecutor
from .constants import Defaults
from .context import ContextFetcher
from .holdings import list_holdings
from .models.errors import InsufficientHoldingsError, ValidationError
from .models.registry import TransactionContext
from .models.transfer import InstrumentId, Recipient, TransferResult
from .results import BatchOutcome, Observer
from .session import CredentialSession

if TYPE_CHECKING:
    from .client import CbtcClient

logger = logging.getLogger(__name__)


async def distribute(
    client: "CbtcClient",
    session: CredentialSession,
    sender: str,
    admin: str,
    recipients: Sequence[Recipient],
    instrument_id: str = Defaults.INSTRUMENT_ID,
    reference_base: Optional[str] = None,
    observer: Optional[Observer] = None,
    context: Optional[TransactionContext] = None,
    execute_before: timedelta = timedelta(hours=Defaults.EXECUTE_BEFORE_HOURS),
    context_execute_before: timedelta = timedelta(hours=Defaults.CONTEXT_EXECUTE_BEFORE_HOURS),
) -> BatchOutcome[TransferResult]:
    """Send one chained transfer per recipient, starting from all current holdings.

    Args:
        client: Connected client
        session: Sender's credential session
        sender: Paying party
        admin: Decentralized party administering the instrument
        recipients: Payees in payment order
        instrument_id: Instrument to send
        reference_base: Base for per-recipient idempotency references
        observer: Receives each result as it is produced
        context: Previously fetched transfer context to reuse
        execute_before: Deadline offset of each transfer
        context_execute_before: Deadline offset of the transfer used to fetch the context

    Raises:
        ValidationError: No recipients
        InsufficientHoldingsError: The sender has no holdings at all
        AuthenticationError, LedgerQueryError, RegistryError: Setup failed
    """
    if not recipients:
        raise ValidationError("No recipients provided", field="recipients")

    access_token = await session.ensure_fresh()
    holdings = await list_holdings(client.ledger, sender, access_token, instrument_id)
    if not holdings:
        raise InsufficientHoldingsError(f"{sender} has no {instrument_id} holdings")

    logger.info("Distributing to %d recipient(s) from %d holding(s)", len(recipients), len(holdings))

    executor = ChainExecutor(
        ledger=client.ledger,
        sender=sender,
        instrument_id=InstrumentId(admin=admin, id=instrument_id),
        admin=admin,
        execute_before=execute_before,
        reference_base=reference_base,
        context_fetcher=ContextFetcher(client.registry, admin, execute_before=context_execute_before),
    )
    return await executor.execute(
        recipients,
        [h.contract_id for h in holdings],
        session,
        context=context,
        observer=observer,
    )
