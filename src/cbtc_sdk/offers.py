"""Pending transfer offers: listing, bulk accept and bulk withdraw."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from .batch import BatchController
from .constants import Choices, Defaults, Templates
from .models.ledger import ActiveContract
from .models.offer import OfferResult, PendingOffer
from .resources.ledger import LedgerResource, template_filter
from .results import BatchOutcome, Observer, ResultAggregator
from .session import CredentialSession

if TYPE_CHECKING:
    from .client import CbtcClient

logger = logging.getLogger(__name__)


def _matches(contract: ActiveContract, role: str, party: str, instrument_id: str) -> bool:
    transfer = (contract.created_event.create_argument or {}).get("transfer") or {}
    instrument = (transfer.get("instrumentId") or {}).get("id")
    return (
        transfer.get(role) == party
        and isinstance(instrument, str)
        and instrument.lower() == instrument_id.lower()
    )


async def _list_offers(
    ledger: LedgerResource,
    party: str,
    access_token: str,
    role: str,
    instrument_id: str,
) -> list[PendingOffer]:
    contracts = await ledger.active_contracts(party, access_token, template_filter(Templates.TRANSFER_OFFER))
    return [PendingOffer.from_contract(c) for c in contracts if _matches(c, role, party, instrument_id)]


async def list_incoming_offers(
    ledger: LedgerResource,
    party: str,
    access_token: str,
    instrument_id: str = Defaults.INSTRUMENT_ID,
) -> list[PendingOffer]:
    """Offers where ``party`` is the receiver."""
    return await _list_offers(ledger, party, access_token, "receiver", instrument_id)


async def list_outgoing_offers(
    ledger: LedgerResource,
    party: str,
    access_token: str,
    instrument_id: str = Defaults.INSTRUMENT_ID,
) -> list[PendingOffer]:
    """Offers where ``party`` is the sender."""
    return await _list_offers(ledger, party, access_token, "sender", instrument_id)


async def _settle_all(
    client: "CbtcClient",
    session: CredentialSession,
    party: str,
    admin: str,
    choice: str,
    incoming: bool,
    batch_size: int,
    instrument_id: str,
    observer: Optional[Observer],
) -> BatchOutcome[OfferResult]:
    access_token = await session.ensure_fresh()
    lister = list_incoming_offers if incoming else list_outgoing_offers
    offers = await lister(client.ledger, party, access_token, instrument_id)

    if not offers:
        logger.info("No pending %s offers for %s", "incoming" if incoming else "outgoing", party)
        return ResultAggregator[OfferResult]().outcome()

    # One context serves every CBTC instruction in the run; the registry
    # hands out the same context for withdraw as for accept.
    context = await client.registry.accept_context(admin, offers[0].contract_id)

    controller = BatchController(client.ledger, party, choice)
    return await controller.run_batches(offers, context, session, batch_size=batch_size, observer=observer)


async def accept_all(
    client: "CbtcClient",
    session: CredentialSession,
    party: str,
    admin: str,
    batch_size: int = Defaults.OFFER_BATCH_SIZE,
    instrument_id: str = Defaults.INSTRUMENT_ID,
    observer: Optional[Observer] = None,
) -> BatchOutcome[OfferResult]:
    """Accept every pending incoming offer, ``batch_size`` per transaction."""
    return await _settle_all(
        client, session, party, admin, Choices.ACCEPT, True, batch_size, instrument_id, observer
    )


async def withdraw_all(
    client: "CbtcClient",
    session: CredentialSession,
    party: str,
    admin: str,
    batch_size: int = Defaults.OFFER_BATCH_SIZE,
    instrument_id: str = Defaults.INSTRUMENT_ID,
    observer: Optional[Observer] = None,
) -> BatchOutcome[OfferResult]:
    """Withdraw every pending outgoing offer, ``batch_size`` per transaction."""
    return await _settle_all(
        client, session, party, admin, Choices.WITHDRAW, False, batch_size, instrument_id, observer
    )
