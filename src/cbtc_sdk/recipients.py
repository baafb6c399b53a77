"""Recipient list loading from CSV files."""
from __future__ import annotations

import csv
import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Iterable, Union

from .models.errors import ValidationError
from .models.transfer import Recipient

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("receiver", "amount")


def parse_recipients(rows: Iterable[dict[str, str]]) -> list[Recipient]:
    """Turn ``receiver,amount[,reference]`` rows into recipients, in order."""
    recipients = []
    for line, row in enumerate(rows, start=2):
        receiver = (row.get("receiver") or "").strip()
        amount = (row.get("amount") or "").strip()
        reference = (row.get("reference") or "").strip() or None
        if not receiver:
            raise ValidationError(f"Row {line}: receiver is empty", field="receiver")
        try:
            value = Decimal(amount)
        except InvalidOperation as e:
            raise ValidationError(f"Row {line}: amount {amount!r} is not a decimal", field="amount") from e
        if not value.is_finite() or value <= 0:
            raise ValidationError(f"Row {line}: amount must be positive", field="amount")
        recipients.append(Recipient(receiver=receiver, amount=amount, reference=reference))
    return recipients


def load_recipients_csv(path: Union[str, Path]) -> list[Recipient]:
    """Read recipients from a CSV file with a ``receiver,amount`` header.

    Raises:
        ValidationError: Missing columns, bad rows, or no rows at all
    """
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        columns = [c.strip() for c in (reader.fieldnames or [])]
        missing = [c for c in REQUIRED_COLUMNS if c not in columns]
        if missing:
            raise ValidationError(f"CSV {path} is missing column(s): {', '.join(missing)}", field="header")
        reader.fieldnames = columns
        recipients = parse_recipients(reader)

    if not recipients:
        raise ValidationError(f"CSV {path} contains no recipients", field="recipients")

    logger.debug("Loaded %d recipient(s) from %s", len(recipients), path)
    return recipients
