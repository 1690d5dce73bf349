"""
Fan-out helpers for independent async work.

Commands run their validation gates and multi-issue lookups concurrently.
Results are collected as tasks complete and re-ordered by input index, so
callers always see them in the order they asked for them.

Example:
    >>> issues = await gather_ordered([tracker.get_issue(k) for k in ("A-1", "A-2")])
    >>> [i.key for i in issues]
    ['A-1', 'A-2']
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

import structlog

from ticketflow.exceptions import ValidationFailedError

log = structlog.get_logger(__name__)

T = TypeVar("T")

Check = tuple[Callable[[], Awaitable[bool]], str]
"""A validation gate: an async predicate and the message shown when it fails."""


async def _indexed(index: int, awaitable: Awaitable[T]) -> tuple[int, T]:
    return index, await awaitable


async def gather_ordered(awaitables: Sequence[Awaitable[T]]) -> list[T]:
    """Run awaitables concurrently and return results in input order.

    The first exception cancels the remaining tasks and propagates.
    """
    if not awaitables:
        return []

    tasks = [asyncio.ensure_future(_indexed(i, aw)) for i, aw in enumerate(awaitables)]
    results: dict[int, Any] = {}
    try:
        for completed in asyncio.as_completed(tasks):
            index, value = await completed
            results[index] = value
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()

    return [results[i] for i in range(len(tasks))]


# Checks left running by a failed validation
_abandoned: set[asyncio.Task[Any]] = set()


def _abandon(task: asyncio.Task[Any]) -> None:
    _abandoned.add(task)
    task.add_done_callback(_forget)


def _forget(task: asyncio.Task[Any]) -> None:
    _abandoned.discard(task)
    if not task.cancelled() and task.exception() is not None:
        log.debug("abandoned_check_failed", error=str(task.exception()))


async def run_validations(checks: Sequence[Check]) -> None:
    """Run all validation gates concurrently.

    Checks are evaluated as they complete; the first one that returns
    False raises. Checks still pending at that point are abandoned, not
    cancelled: they run to completion (or until the event loop shuts
    down) and their results are ignored.

    Raises:
        ValidationFailedError: With the message of the first failed gate.
    """

    async def evaluate(check: Check) -> tuple[bool, str]:
        predicate, message = check
        return await predicate(), message

    tasks = [asyncio.ensure_future(evaluate(check)) for check in checks]
    try:
        for completed in asyncio.as_completed(tasks):
            passed, message = await completed
            if not passed:
                log.info("validation_failed", message=message)
                raise ValidationFailedError(message)
    finally:
        for task in tasks:
            if not task.done():
                _abandon(task)
