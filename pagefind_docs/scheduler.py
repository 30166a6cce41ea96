"""Run many async tasks with a fixed concurrency budget.

``run_bounded`` behaves like "gather with return_exceptions" behind a
concurrency gate: every task runs to completion, failures are captured as
:class:`Outcome` values, and the result list lines up with the input.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

T = TypeVar("T")

TaskFactory = Callable[[], Awaitable[T]]


@dataclass
class Outcome(Generic[T]):
    """Settled result of one task: a value or an error, never both."""

    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: BaseException) -> "Outcome[T]":
        return cls(error=error)


async def run_bounded(
    tasks: Sequence[TaskFactory[T]],
    limit: int,
    *,
    on_settled: Optional[Callable[[int, Outcome[T]], None]] = None,
) -> List[Outcome[T]]:
    """Run *tasks* with at most *limit* in flight.

    Args:
        tasks: Zero-argument callables returning awaitables. A task is only
            started once a worker slot is free.
        limit: Maximum number of concurrently running tasks (>= 1).
        on_settled: Optional callback invoked as ``(index, outcome)`` each
            time a task settles, in completion order.

    Returns:
        One :class:`Outcome` per task, in input order.
    """
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")

    results: List[Optional[Outcome[T]]] = [None] * len(tasks)
    pending = iter(enumerate(tasks))

    async def worker() -> None:
        for index, task in pending:
            try:
                outcome: Outcome[T] = Outcome.success(await task())
            except Exception as exc:
                outcome = Outcome.failure(exc)
            results[index] = outcome
            if on_settled is not None:
                on_settled(index, outcome)

    workers = min(limit, len(tasks))
    if workers:
        await asyncio.gather(*(worker() for _ in range(workers)))

    return [outcome for outcome in results if outcome is not None]
