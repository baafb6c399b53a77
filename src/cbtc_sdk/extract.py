"""
Response extraction for transfer submissions.

Reads exactly the fields the chain needs out of a transaction tree:
the update id, and from the exercised transfer choice its sender change
holdings and its output (a transfer instruction, or for self-transfers
the receiver holdings).
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from .constants import Choices
from .models.errors import ParseFailure, ResponseParseError
from .models.ledger import ExercisedEventValue, TransactionTreeResponse, TransferExerciseResult

EXERCISED_EVENT = "ExercisedTreeEvent"


@dataclass(frozen=True)
class ExtractedTransfer:
    """Fields pulled out of a successful transfer response."""

    change_ids: tuple[str, ...]
    output_id: str
    update_id: str
    receiver_holding_ids: tuple[str, ...] = ()


def _field_path(error: PydanticValidationError) -> Optional[str]:
    first = error.errors()[0]
    return ".".join(str(part) for part in first.get("loc", ())) or None


def _schema_error(error: PydanticValidationError, where: str) -> ResponseParseError:
    first = error.errors()[0]
    field = _field_path(error)
    kind = ParseFailure.MISSING_FIELD if first.get("type") == "missing" else ParseFailure.TYPE_MISMATCH
    return ResponseParseError(f"{where}: {first.get('msg')} at {field}", kind=kind, field=field)


class ResponseExtractor:
    """Parses ledger submission responses for one choice name."""

    def __init__(self, choice: str = Choices.TRANSFER) -> None:
        self.choice = choice

    def extract(self, raw: str) -> ExtractedTransfer:
        """Extract change ids, output id and update id from ``raw``.

        Raises:
            ResponseParseError: With ``kind`` set to the reason
        """
        try:
            document = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise ResponseParseError(
                f"Response is not valid JSON: {e}", kind=ParseFailure.INVALID_JSON
            ) from e

        try:
            tree = TransactionTreeResponse.model_validate(document).transaction_tree
        except PydanticValidationError as e:
            raise _schema_error(e, "Transaction tree") from e

        event = self._find_event(tree.events_by_id)
        if event.exercise_result is None:
            raise ResponseParseError(
                "Exercised event has no exerciseResult",
                kind=ParseFailure.MISSING_FIELD,
                field="exerciseResult",
            )

        try:
            result = TransferExerciseResult.model_validate(event.exercise_result)
        except PydanticValidationError as e:
            raise _schema_error(e, "Exercise result") from e

        receiver_holdings = tuple(result.output.value.receiver_holding_cids or ())
        output_id = result.output.value.transfer_instruction_cid
        if output_id is None and receiver_holdings:
            output_id = receiver_holdings[0]
        if output_id is None:
            raise ResponseParseError(
                "Exercise result has neither transferInstructionCid nor receiverHoldingCids",
                kind=ParseFailure.MISSING_FIELD,
                field="output.value.transferInstructionCid",
            )

        return ExtractedTransfer(
            change_ids=tuple(result.sender_change_cids),
            output_id=output_id,
            update_id=tree.update_id,
            receiver_holding_ids=receiver_holdings,
        )

    def _find_event(self, events_by_id: dict[str, dict[str, Any]]) -> ExercisedEventValue:
        seen_choices = []
        for event in events_by_id.values():
            exercised = event.get(EXERCISED_EVENT) if isinstance(event, dict) else None
            if exercised is None:
                continue
            value = exercised.get("value") if isinstance(exercised, dict) else None
            choice = value.get("choice") if isinstance(value, dict) else None
            if choice != self.choice:
                seen_choices.append(str(choice))
                continue
            try:
                return ExercisedEventValue.model_validate(value)
            except PydanticValidationError as e:
                raise _schema_error(e, "Exercised event") from e

        if not seen_choices:
            raise ResponseParseError(
                "Transaction tree has no exercised event", kind=ParseFailure.MISSING_EVENT
            )
        raise ResponseParseError(
            f"No exercised event for choice {self.choice} (found: {', '.join(seen_choices)})",
            kind=ParseFailure.WRONG_CHOICE,
            details={"choices": seen_choices},
        )


def extract_update_id(raw: str) -> Optional[str]:
    """Best-effort update id of a transaction tree, for multi-command batches."""
    try:
        return TransactionTreeResponse.model_validate_json(raw).transaction_tree.update_id
    except (PydanticValidationError, ValueError):
        return None
