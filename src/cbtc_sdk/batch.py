"""
Batched execution of independent instruction choices.

Unlike the transfer chain, accepting or withdrawing pending offers has no
dependency between items, so several are packed into one multi-command
transaction. A batch lands or fails as a whole.
"""
from __future__ import annotations

import logging
from typing import Iterator, List, Optional, Sequence, TypeVar

from .chain import Ledger, Session
from .constants import Choices, Defaults
from .extract import extract_update_id
from .logging_utils import short_id
from .models.errors import CbtcError, ValidationError
from .models.offer import OfferResult, PendingOffer
from .models.registry import OfferChoiceContext
from .models.submission import Submission, instruction_command
from .results import BatchOutcome, Observer, ResultAggregator

logger = logging.getLogger(__name__)

T = TypeVar("T")


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    """Split ``items`` into consecutive groups of at most ``size``."""
    if size <= 0:
        raise ValidationError("batch_size must be positive", field="batch_size")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


class BatchController:
    """Exercises one choice on many pending offers, a batch per transaction.

    Args:
        ledger: Submits transactions, returning the raw response body
        party: Party acting in every submission
        choice: ``Choices.ACCEPT`` or ``Choices.WITHDRAW``
    """

    def __init__(self, ledger: Ledger, party: str, choice: str = Choices.ACCEPT) -> None:
        self._ledger = ledger
        self.party = party
        self.choice = choice

    def _counterparty(self, offer: PendingOffer) -> Optional[str]:
        return offer.sender if self.choice == Choices.ACCEPT else offer.receiver

    async def run_batches(
        self,
        items: Sequence[PendingOffer],
        context: OfferChoiceContext,
        session: Session,
        batch_size: int = Defaults.OFFER_BATCH_SIZE,
        observer: Optional[Observer] = None,
    ) -> BatchOutcome[OfferResult]:
        """Submit ``items`` in sequential batches sharing one context.

        Returns one ``OfferResult`` per item in input order; every item of
        a batch shares that batch's success flag and error.

        Raises:
            ValidationError: ``batch_size`` is not positive
        """
        batches = list(chunked(items, batch_size))
        aggregator: ResultAggregator[OfferResult] = ResultAggregator(observer)
        total_batches = len(batches)

        logger.info(
            "Submitting %d %s command(s) in %d batch(es) of up to %d",
            len(items),
            self.choice,
            total_batches,
            batch_size,
        )

        index = 0
        for batch_number, batch in enumerate(batches, start=1):
            update_id, error = await self._submit(batch, context, session)
            if error is None:
                logger.debug("Batch %d/%d succeeded (update %s)", batch_number, total_batches, update_id)
            else:
                logger.error("Batch %d/%d failed: %s", batch_number, total_batches, error)

            for offer in batch:
                await aggregator.add(OfferResult(
                    index=index,
                    contract_id=offer.contract_id,
                    success=error is None,
                    amount=offer.amount,
                    counterparty=self._counterparty(offer),
                    update_id=update_id,
                    error=error,
                ))
                index += 1

        outcome = aggregator.outcome()
        logger.info("%s finished: %d succeeded, %d failed", self.choice, outcome.success_count, outcome.fail_count)
        return outcome

    async def _submit(
        self,
        batch: Sequence[PendingOffer],
        context: OfferChoiceContext,
        session: Session,
    ) -> tuple[Optional[str], Optional[CbtcError]]:
        for offer in batch:
            logger.debug("Preparing %s on %s", self.choice, short_id(offer.contract_id))

        submission = Submission(
            act_as=[self.party],
            disclosed_contracts=list(context.disclosed_contracts),
            commands=[instruction_command(offer.contract_id, self.choice, context) for offer in batch],
        )
        try:
            access_token = await session.ensure_fresh()
            raw = await self._ledger.submit_and_wait(submission, access_token)
        except CbtcError as e:
            return None, e
        return extract_update_id(raw), None
