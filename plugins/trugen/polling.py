"""Fixed-interval polling of a conversation until it reaches a terminal status.

Usage::

    outcome = await poll_conversation(lambda: client.get_conversation(cid), PollPolicy())
    if outcome.state is PollState.exhausted:
        ...  # still not Completed, outcome.record is the last fetch

There is no backoff and no jitter: up to ``max_attempts`` re-fetches spaced
``interval`` seconds apart. Running out of attempts is not an error. Any
exception raised by ``fetch`` propagates immediately.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable

TERMINAL_STATUS = "Completed"


def conversation_status(record: Any) -> Any:
    """Return ``record["status"]`` for dict records, else ``None``."""
    if isinstance(record, dict):
        return record.get("status")
    return None


def is_completed(record: Any) -> bool:
    return conversation_status(record) == TERMINAL_STATUS


class PollState(str, Enum):
    """Where a poll ended up."""

    fetched = "fetched"
    terminal = "terminal"
    exhausted = "exhausted"


@dataclass
class PollPolicy:
    """Polling schedule and stop condition.

    Attributes:
        max_attempts: Re-fetches allowed after the initial fetch.
        interval: Seconds slept before each re-fetch.
        is_terminal: Predicate deciding whether a fetched record ends polling.
    """

    max_attempts: int = 5
    interval: float = 2.0
    is_terminal: Callable[[Any], bool] = field(default=is_completed)

    @property
    def max_wait(self) -> float:
        """Upper bound on time spent sleeping, excluding request latency."""
        return self.max_attempts * self.interval


@dataclass
class PollOutcome:
    record: Any
    state: PollState
    fetches: int


async def poll_conversation(
    fetch: Callable[[], Awaitable[Any]],
    policy: PollPolicy,
    *,
    wait: bool = True,
    sleep: Callable[[float], Awaitable[Any]] | None = None,
    on_wait: Callable[[int, Any], None] | None = None,
) -> PollOutcome:
    """Fetch a record and, when ``wait`` is set, re-fetch until it is terminal.

    Args:
        fetch: Zero-argument coroutine function returning the current record.
        policy: Attempt ceiling, interval and terminal predicate.
        wait: When False exactly one fetch is made and its record returned.
        sleep: Awaitable delay function; defaults to ``asyncio.sleep``.
        on_wait: Called with ``(attempt, record)`` before each sleep.

    Returns:
        A ``PollOutcome`` holding the last fetched record, the final state and
        the total number of fetches performed.
    """
    record = await fetch()
    fetches = 1
    if not wait:
        return PollOutcome(record=record, state=PollState.fetched, fetches=fetches)

    delay = sleep or asyncio.sleep
    attempts = 0
    while not policy.is_terminal(record) and attempts < policy.max_attempts:
        if on_wait is not None:
            on_wait(attempts + 1, record)
        await delay(policy.interval)
        record = await fetch()
        fetches += 1
        attempts += 1

    state = PollState.terminal if policy.is_terminal(record) else PollState.exhausted
    return PollOutcome(record=record, state=state, fetches=fetches)
