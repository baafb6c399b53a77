"""Split a holding into several of chosen amounts."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Optional, Sequence

from .chain import ChainExecutor
from .constants import Defaults, MetaKeys
from .context import ContextFetcher
from .holdings import list_holdings
from .models.errors import CbtcError, InsufficientHoldingsError, ValidationError
from .models.transfer import InstrumentId, Recipient, TransferResult
from .results import BatchOutcome, Observer, ResultAggregator
from .session import CredentialSession

if TYPE_CHECKING:
    from .client import CbtcClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SplitResult:
    """Holdings produced by a split, and what remained afterwards."""

    output_holding_ids: tuple[str, ...]
    change_holding_ids: tuple[str, ...]
    outcome: BatchOutcome[TransferResult]


async def split_holdings(
    client: "CbtcClient",
    session: CredentialSession,
    party: str,
    admin: str,
    amounts: Sequence[str],
    holding_ids: Optional[Sequence[str]] = None,
    instrument_id: str = Defaults.INSTRUMENT_ID,
    observer: Optional[Observer] = None,
) -> SplitResult:
    """Carve one holding per amount out of ``holding_ids`` with self-transfers.

    Each step spends the change of the previous one.

    Raises:
        ValidationError: No amounts given
        InsufficientHoldingsError: No input, or the change ran out early
        CbtcError: A step failed; earlier steps are already on the ledger and
            their outputs are listed in the error's ``completed_outputs`` detail
    """
    if not amounts:
        raise ValidationError("No amounts to split", field="amounts")

    if holding_ids is None:
        access_token = await session.ensure_fresh()
        holdings = await list_holdings(client.ledger, party, access_token, instrument_id)
        holding_ids = [h.contract_id for h in holdings]
    pool = list(holding_ids)
    if not pool:
        raise InsufficientHoldingsError()

    execute_before = timedelta(hours=Defaults.SELF_TRANSFER_EXECUTE_BEFORE_HOURS)
    instrument = InstrumentId(admin=admin, id=instrument_id)
    fetcher = ContextFetcher(client.registry, admin, execute_before=execute_before)
    executor = ChainExecutor(
        ledger=client.ledger,
        sender=party,
        instrument_id=instrument,
        admin=admin,
        execute_before=execute_before,
        reason=MetaKeys.MERGE_SPLIT,
        tx_kind=MetaKeys.MERGE_SPLIT,
    )

    recipients = [Recipient(receiver=party, amount=amount) for amount in amounts]
    context = await fetcher.fetch(fetcher.representative_transfer(party, recipients[0], instrument, pool))
    aggregator: ResultAggregator[TransferResult] = ResultAggregator(observer)
    outputs: list[str] = []

    for index, recipient in enumerate(recipients):
        if not pool:
            raise _with_progress(InsufficientHoldingsError("Insufficient funds for split"), outputs, pool)
        logger.debug("Split %d/%d: %s", index + 1, len(recipients), recipient.amount)
        result = await executor.step(index, recipient, pool, context, session)
        await aggregator.add(result)
        if result.error is not None:
            raise _with_progress(result.error, outputs, pool)
        outputs.append(result.instruction_id)  # type: ignore[arg-type]
        pool = list(result.change_ids)

    logger.info("Split %d holding(s) off for %s, %d change holding(s) left", len(outputs), party, len(pool))
    return SplitResult(
        output_holding_ids=tuple(outputs),
        change_holding_ids=tuple(pool),
        outcome=aggregator.outcome(),
    )


def _with_progress(error: CbtcError, outputs: Sequence[str], pool: Sequence[str]) -> CbtcError:
    error.details["completed_outputs"] = list(outputs)
    error.details["remaining_holdings"] = list(pool)
    return error
