"""
Sequential chained transfer execution.

Each recipient is paid by its own ledger transaction. The holdings left
over from one transaction (its "change") become the inputs of the next,
so a single funding holding can pay any number of recipients without
being split up front.

Example:
    ```python
    executor = ChainExecutor(
        ledger=client.ledger,
        sender=party,
        instrument_id=InstrumentId(admin=admin),
        admin=admin,
        context_fetcher=ContextFetcher(client.registry, admin),
        reference_base="payroll-2024-06",
    )
    outcome = await executor.execute(recipients, holdings, session)
    print(f"{outcome.success_count} sent, {outcome.fail_count} failed")
    ```
"""
from __future__ import annotations

import base64
import logging
from datetime import timedelta
from typing import Optional, Protocol, Sequence

from .constants import Defaults
from .context import ContextFetcher
from .extract import ResponseExtractor
from .logging_utils import short_id, truncate_body
from .models.errors import (
    CbtcError,
    InsufficientHoldingsError,
    ResponseParseError,
    ValidationError,
)
from .models.registry import TransactionContext
from .models.submission import Submission, transfer_submission
from .models.transfer import InstrumentId, Recipient, Transfer, TransferResult
from .results import BatchOutcome, Observer, ResultAggregator

logger = logging.getLogger(__name__)


class Ledger(Protocol):
    async def submit_and_wait(self, submission: Submission, access_token: str) -> str:
        ...


class Session(Protocol):
    async def ensure_fresh(self) -> str:
        ...


def generate_unique_reference(reference_base: str, sender: str, receiver: str) -> str:
    """Deterministic idempotency reference for one sender/receiver pair."""
    combined = f"{reference_base}-{sender}-{receiver}"
    return base64.b64encode(combined.encode("utf-8")).decode("ascii")


class ChainExecutor:
    """Runs a strictly ordered chain of transfers from one sender.

    Args:
        ledger: Submits transactions, returning the raw response body
        sender: Party paying every recipient
        instrument_id: Instrument being transferred
        admin: Decentralized party expected to administer the instrument
        execute_before: Deadline offset for every transfer
        reason: Value of the reason metadata entry
        tx_kind: Optional tx-kind metadata entry
        reference_base: Base for per-recipient idempotency references
        extractor: Response extractor, defaults to the transfer choice
        context_fetcher: Used by ``execute`` when no context is supplied
    """

    def __init__(
        self,
        ledger: Ledger,
        sender: str,
        instrument_id: InstrumentId,
        admin: str,
        execute_before: timedelta = timedelta(hours=Defaults.EXECUTE_BEFORE_HOURS),
        reason: str = "",
        tx_kind: Optional[str] = None,
        reference_base: Optional[str] = None,
        extractor: Optional[ResponseExtractor] = None,
        context_fetcher: Optional[ContextFetcher] = None,
    ) -> None:
        self._ledger = ledger
        self.sender = sender
        self.instrument_id = instrument_id
        self.admin = admin
        self.execute_before = execute_before
        self.reason = reason
        self.tx_kind = tx_kind
        self.reference_base = reference_base
        self._extractor = extractor or ResponseExtractor()
        self._context_fetcher = context_fetcher

    async def execute(
        self,
        recipients: Sequence[Recipient],
        initial_holdings: Sequence[str],
        session: Session,
        context: Optional[TransactionContext] = None,
        observer: Optional[Observer] = None,
    ) -> BatchOutcome[TransferResult]:
        """Validate input, fetch the shared context if needed, then ``run``.

        Failures here abort the whole call before any result is produced.

        Raises:
            ValidationError: Empty recipient list, or no context and no fetcher
            RegistryError: The context fetch failed
        """
        if not recipients:
            raise ValidationError("No recipients provided", field="recipients")

        if context is None:
            if self._context_fetcher is None:
                raise ValidationError("A context or a context fetcher is required", field="context")
            representative = self._context_fetcher.representative_transfer(
                self.sender, recipients[0], self.instrument_id, initial_holdings
            )
            context = await self._context_fetcher.fetch(representative)

        return await self.run(recipients, initial_holdings, context, session, observer)

    async def run(
        self,
        recipients: Sequence[Recipient],
        initial_holdings: Sequence[str],
        context: TransactionContext,
        session: Session,
        observer: Optional[Observer] = None,
    ) -> BatchOutcome[TransferResult]:
        """Pay every recipient in order, chaining change into the next input.

        Always returns exactly one result per recipient, in input order.
        The holding pool is replaced only after a confirmed and parsed
        success; every failure leaves it as it was.
        """
        pool = list(initial_holdings)
        aggregator: ResultAggregator[TransferResult] = ResultAggregator(observer)
        total = len(recipients)

        logger.info("Starting chain of %d transfer(s) from %s with %d holding(s)", total, self.sender, len(pool))

        for index, recipient in enumerate(recipients):
            logger.debug("[%d/%d] %s -> %s (pool: %d)", index + 1, total, recipient.amount, recipient.receiver, len(pool))
            result = await self.step(index, recipient, pool, context, session)
            if result.success:
                pool = list(result.change_ids)
            await aggregator.add(result)

        outcome = aggregator.outcome()
        logger.info(
            "Chain finished: %d succeeded, %d failed, %d holding(s) left",
            outcome.success_count,
            outcome.fail_count,
            len(pool),
        )
        return outcome

    def reference_for(self, recipient: Recipient) -> Optional[str]:
        if recipient.reference:
            return recipient.reference
        if self.reference_base:
            return generate_unique_reference(self.reference_base, self.sender, recipient.receiver)
        return None

    def build_transfer(self, recipient: Recipient, pool: Sequence[str], reference: Optional[str]) -> Transfer:
        return Transfer.build(
            sender=self.sender,
            receiver=recipient.receiver,
            amount=recipient.amount,
            instrument_id=self.instrument_id,
            input_holding_cids=list(pool),
            execute_before=self.execute_before,
            reason=self.reason,
            reference=reference,
            tx_kind=self.tx_kind,
        )

    async def step(
        self,
        index: int,
        recipient: Recipient,
        pool: Sequence[str],
        context: TransactionContext,
        session: Session,
    ) -> TransferResult:
        """Run one transfer from ``pool`` and report it; never raises ``CbtcError``."""

        def failed(error: CbtcError, reference: Optional[str] = None, raw: Optional[str] = None) -> TransferResult:
            return TransferResult(
                index=index,
                receiver=recipient.receiver,
                amount=recipient.amount,
                success=False,
                reference=reference,
                raw_response=raw,
                error=error,
            )

        if not pool:
            logger.error("[%d] No holdings available for %s", index + 1, recipient.receiver)
            return failed(InsufficientHoldingsError())

        try:
            access_token = await session.ensure_fresh()
        except CbtcError as e:
            logger.error("[%d] Credential refresh failed: %s", index + 1, e)
            return failed(e)

        reference = self.reference_for(recipient)
        transfer = self.build_transfer(recipient, pool, reference)
        submission = transfer_submission(context, self.admin, transfer)

        try:
            raw = await self._ledger.submit_and_wait(submission, access_token)
        except CbtcError as e:
            logger.error("[%d] Submission to %s failed: %s", index + 1, recipient.receiver, e)
            return failed(e, reference)

        try:
            extracted = self._extractor.extract(raw)
        except ResponseParseError as e:
            e.details["ledger_state_unknown"] = True
            logger.warning(
                "[%d] Ledger accepted command %s but the response could not be parsed (%s); "
                "holdings may already be consumed: %s",
                index + 1,
                submission.command_id,
                e.kind.value,
                truncate_body(raw),
            )
            return failed(e, reference, raw)

        logger.debug(
            "[%d] Confirmed update %s, output %s, %d change holding(s)",
            index + 1,
            extracted.update_id,
            short_id(extracted.output_id),
            len(extracted.change_ids),
        )
        return TransferResult(
            index=index,
            receiver=recipient.receiver,
            amount=recipient.amount,
            success=True,
            change_ids=extracted.change_ids,
            instruction_id=extracted.output_id,
            update_id=extracted.update_id,
            reference=reference,
            raw_response=raw,
            receiver_holding_ids=extracted.receiver_holding_ids,
        )
