"""Bounded-concurrency batch evaluation.

Fans an async evaluation out over many keys with at most ``concurrency``
evaluations in flight. Each item is isolated: a failure is logged and
reported in ``BatchOutcome.failed`` without disturbing the rest of the
batch. Successful results are collected in completion order.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar

import structlog

from .models import BatchFailure

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass
class BatchOutcome(Generic[T]):
    succeeded: list[T] = field(default_factory=list)
    failed: list[BatchFailure] = field(default_factory=list)


class BatchCoordinator:
    def __init__(self, concurrency: int = 5) -> None:
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        self.concurrency = concurrency
        self._in_flight = 0
        self.peak_in_flight = 0

    @property
    def in_flight(self) -> int:
        return self._in_flight

    async def run(
        self,
        keys: Sequence[str],
        evaluate: Callable[[str], Awaitable[T]],
    ) -> BatchOutcome[T]:
        """Evaluate every key, never holding more than ``concurrency`` permits."""
        semaphore = asyncio.Semaphore(self.concurrency)
        outcome: BatchOutcome[T] = BatchOutcome()
        self.peak_in_flight = 0

        async def _evaluate_one(key: str) -> None:
            async with semaphore:
                self._in_flight += 1
                self.peak_in_flight = max(self.peak_in_flight, self._in_flight)
                try:
                    result = await evaluate(key)
                except Exception as exc:
                    logger.warning(
                        "batch_item_failed",
                        key=key,
                        error_type=type(exc).__name__,
                        error=str(exc),
                    )
                    outcome.failed.append(
                        BatchFailure(
                            contact_id=key,
                            error_type=type(exc).__name__,
                            message=str(exc),
                        )
                    )
                    return
                finally:
                    self._in_flight -= 1
                outcome.succeeded.append(result)

        await asyncio.gather(*(_evaluate_one(key) for key in keys))

        logger.info(
            "batch_completed",
            requested=len(keys),
            succeeded=len(outcome.succeeded),
            failed=len(outcome.failed),
            concurrency=self.concurrency,
            peak_in_flight=self.peak_in_flight,
        )
        return outcome
