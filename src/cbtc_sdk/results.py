"""
Per-item result collection for chained and batched operations.

The aggregator keeps results in input order, tallies them by their
``success`` flag and hands each one to an optional observer before the
caller moves on to the next item.
"""
from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Generic,
    List,
    Optional,
    Protocol,
    Tuple,
    TypeVar,
    Union,
    runtime_checkable,
)

from .models.errors import CbtcError

R = TypeVar("R")


@runtime_checkable
class TransferObserver(Protocol):
    """Receives each result as soon as it is produced, in input order."""

    def on_result(self, result: Any) -> Union[None, Awaitable[None]]:
        ...


Observer = Union[TransferObserver, Callable[[Any], Union[None, Awaitable[None]]]]


async def notify(observer: Optional[Observer], result: Any) -> None:
    """Invoke an observer object or callable, awaiting it when async."""
    if observer is None:
        return
    callback = getattr(observer, "on_result", observer)
    outcome = callback(result)
    if inspect.isawaitable(outcome):
        await outcome


@dataclass
class BatchOutcome(Generic[R]):
    """All results of one batch with their tallies.

    Attributes:
        results: One result per input item, in input order
        success_count: Number of successful results
        fail_count: Number of failed results
        started_at: When the batch started
        completed_at: When the last result was added
    """

    results: List[R] = field(default_factory=list)
    success_count: int = 0
    fail_count: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def has_failures(self) -> bool:
        return self.fail_count > 0

    @property
    def success_rate(self) -> float:
        """Success rate as a percentage."""
        if not self.results:
            return 0.0
        return (self.success_count / len(self.results)) * 100

    @property
    def successful_results(self) -> List[R]:
        return [r for r in self.results if r.success]  # type: ignore[attr-defined]

    @property
    def failed_results(self) -> List[R]:
        return [r for r in self.results if not r.success]  # type: ignore[attr-defined]

    @property
    def errors(self) -> List[Tuple[int, CbtcError]]:
        """All errors with their item indices."""
        return [
            (r.index, r.error)  # type: ignore[attr-defined]
            for r in self.results
            if r.error is not None  # type: ignore[attr-defined]
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],  # type: ignore[attr-defined]
            "success_count": self.success_count,
            "fail_count": self.fail_count,
            "success_rate": f"{self.success_rate:.2f}%",
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


class ResultAggregator(Generic[R]):
    """Folds results into a ``BatchOutcome``; no retries, no filtering."""

    def __init__(self, observer: Optional[Observer] = None) -> None:
        self._observer = observer
        self._outcome: BatchOutcome[R] = BatchOutcome(started_at=datetime.now(timezone.utc))

    async def add(self, result: R) -> None:
        """Record ``result`` and notify the observer before returning."""
        self._outcome.results.append(result)
        if result.success:  # type: ignore[attr-defined]
            self._outcome.success_count += 1
        else:
            self._outcome.fail_count += 1
        await notify(self._observer, result)

    def outcome(self) -> BatchOutcome[R]:
        self._outcome.completed_at = datetime.now(timezone.utc)
        return self._outcome
