"""
Holding consolidation.

Parties accumulate many small holdings over time. Consolidation merges
them into one by transferring the summed balance to oneself with all of
them as inputs.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Optional, Sequence

from .chain import ChainExecutor
from .constants import Defaults, MetaKeys
from .context import ContextFetcher
from .holdings import holding_amount, list_holdings
from .models.errors import InsufficientHoldingsError, ValidationError
from .models.transfer import InstrumentId, Recipient
from .session import CredentialSession

if TYPE_CHECKING:
    from .client import CbtcClient

logger = logging.getLogger(__name__)

CONSOLIDATION_REASON = "UTXO consolidation"


def format_amount(amount: Decimal) -> str:
    """Render an amount with at most 10 decimals and no trailing zeros."""
    text = f"{amount:.{Defaults.AMOUNT_DECIMALS}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


@dataclass(frozen=True)
class ConsolidationResult:
    """What ``check_and_consolidate`` did."""

    consolidated: bool
    holding_ids: tuple[str, ...]
    holdings_before: int
    holdings_after: int


async def consolidate_holdings(
    client: "CbtcClient",
    session: CredentialSession,
    party: str,
    admin: str,
    holding_ids: Optional[Sequence[str]] = None,
    instrument_id: str = Defaults.INSTRUMENT_ID,
) -> list[str]:
    """Merge holdings into one with a self-transfer of their total.

    Args:
        holding_ids: Holdings to merge, defaults to every unlocked holding

    Returns:
        The resulting holding ids; the input itself when only one was given

    Raises:
        ValidationError: A requested holding is not an unlocked holding of the party
        InsufficientHoldingsError: Nothing to merge, or the total is zero
        CbtcError: The self-transfer failed
    """
    access_token = await session.ensure_fresh()
    holdings = await list_holdings(client.ledger, party, access_token, instrument_id)

    if holding_ids is None:
        holding_ids = [h.contract_id for h in holdings]
    holding_ids = list(holding_ids)

    if not holding_ids:
        raise InsufficientHoldingsError("No holdings to consolidate")
    known = {h.contract_id for h in holdings}
    unknown = [cid for cid in holding_ids if cid not in known]
    if unknown:
        raise ValidationError(
            f"Not unlocked {instrument_id} holdings of {party}: {', '.join(unknown)}",
            field="holding_ids",
        )
    if len(holding_ids) == 1:
        return holding_ids

    selected = set(holding_ids)
    total = sum(
        (holding_amount(h) or Decimal(0) for h in holdings if h.contract_id in selected),
        Decimal(0),
    )
    if total == 0:
        raise InsufficientHoldingsError("Total amount to consolidate is zero")

    amount = format_amount(total)
    logger.info("Consolidating %d holding(s) of %s into one (%s)", len(holding_ids), party, amount)

    execute_before = timedelta(hours=Defaults.SELF_TRANSFER_EXECUTE_BEFORE_HOURS)
    executor = ChainExecutor(
        ledger=client.ledger,
        sender=party,
        instrument_id=InstrumentId(admin=admin, id=instrument_id),
        admin=admin,
        execute_before=execute_before,
        reason=CONSOLIDATION_REASON,
        tx_kind=MetaKeys.MERGE_SPLIT,
        context_fetcher=ContextFetcher(client.registry, admin, execute_before=execute_before),
    )
    outcome = await executor.execute([Recipient(receiver=party, amount=amount)], holding_ids, session)
    result = outcome.results[0]
    if result.error is not None:
        raise result.error
    return list(result.receiver_holding_ids)


async def check_and_consolidate(
    client: "CbtcClient",
    session: CredentialSession,
    party: str,
    admin: str,
    threshold: int = Defaults.CONSOLIDATION_THRESHOLD,
    instrument_id: str = Defaults.INSTRUMENT_ID,
) -> ConsolidationResult:
    """Consolidate only when the party holds at least ``threshold`` holdings."""
    access_token = await session.ensure_fresh()
    holdings = await list_holdings(client.ledger, party, access_token, instrument_id)
    before = len(holdings)

    if before < threshold:
        logger.debug("%d holding(s) below threshold %d, nothing to do", before, threshold)
        return ConsolidationResult(
            consolidated=False,
            holding_ids=tuple(h.contract_id for h in holdings),
            holdings_before=before,
            holdings_after=before,
        )

    merged = await consolidate_holdings(
        client,
        session,
        party,
        admin,
        holding_ids=[h.contract_id for h in holdings],
        instrument_id=instrument_id,
    )
    return ConsolidationResult(
        consolidated=True,
        holding_ids=tuple(merged),
        holdings_before=before,
        holdings_after=len(merged),
    )
