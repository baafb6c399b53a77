"""Holding (UTXO) queries for the CBTC instrument."""
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from .constants import Defaults, Templates
from .models.ledger import ActiveContract
from .resources.ledger import LedgerResource, interface_filter

logger = logging.getLogger(__name__)


def _holding_view(contract: ActiveContract) -> Optional[dict[str, Any]]:
    for view in contract.created_event.interface_views:
        if view.view_value is not None:
            return view.view_value
    return None


def is_unlocked_holding(contract: ActiveContract, instrument_id: str = Defaults.INSTRUMENT_ID) -> bool:
    """True for an unlocked holding of ``instrument_id`` (case-insensitive)."""
    for view in contract.created_event.interface_views:
        value = view.view_value or {}
        instrument = (value.get("instrumentId") or {}).get("id")
        if isinstance(instrument, str) and instrument.lower() == instrument_id.lower() and value.get("lock") is None:
            return True
    return False


def holding_amount(contract: ActiveContract) -> Optional[Decimal]:
    """Amount recorded in a holding's interface view."""
    view = _holding_view(contract)
    if view is None or view.get("amount") is None:
        return None
    try:
        return Decimal(str(view["amount"]))
    except InvalidOperation:
        return None


async def list_holdings(
    ledger: LedgerResource,
    party: str,
    access_token: str,
    instrument_id: str = Defaults.INSTRUMENT_ID,
) -> list[ActiveContract]:
    """Unlocked holdings of ``instrument_id`` owned by ``party``.

    Raises:
        LedgerQueryError: The ledger-end or active-contracts query failed
    """
    contracts = await ledger.active_contracts(
        party,
        access_token,
        interface_filter(Templates.HOLDING_INTERFACE),
    )
    holdings = [c for c in contracts if is_unlocked_holding(c, instrument_id)]
    logger.debug("%d of %d holding contract(s) are unlocked %s", len(holdings), len(contracts), instrument_id)
    return holdings


async def count_holdings(
    ledger: LedgerResource,
    party: str,
    access_token: str,
    instrument_id: str = Defaults.INSTRUMENT_ID,
) -> int:
    return len(await list_holdings(ledger, party, access_token, instrument_id))


def total_balance(holdings: list[ActiveContract]) -> Decimal:
    return sum((holding_amount(h) or Decimal(0) for h in holdings), Decimal(0))
