"""Single transfer convenience wrapper."""
from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Optional

from .constants import Defaults
from .distribute import distribute
from .models.transfer import Recipient, TransferResult
from .session import CredentialSession

if TYPE_CHECKING:
    from .client import CbtcClient


async def send(
    client: "CbtcClient",
    session: CredentialSession,
    sender: str,
    admin: str,
    receiver: str,
    amount: str,
    reference: Optional[str] = None,
    instrument_id: str = Defaults.INSTRUMENT_ID,
    execute_before: timedelta = timedelta(hours=Defaults.EXECUTE_BEFORE_HOURS),
    context_execute_before: timedelta = timedelta(hours=Defaults.CONTEXT_EXECUTE_BEFORE_HOURS),
) -> TransferResult:
    """Send ``amount`` to ``receiver`` using all of the sender's holdings as input.

    Raises:
        CbtcError: The setup or the transfer itself failed
    """
    outcome = await distribute(
        client,
        session,
        sender=sender,
        admin=admin,
        recipients=[Recipient(receiver=receiver, amount=amount, reference=reference)],
        instrument_id=instrument_id,
        execute_before=execute_before,
        context_execute_before=context_execute_before,
    )
    result = outcome.results[0]
    if result.error is not None:
        raise result.error
    return result
