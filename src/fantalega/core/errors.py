"""Domain errors and the boundary helper that turns them into outcomes.

Services raise one of the ``LeagueError`` subclasses for every expected
failure. Callers that need a structured answer instead of an exception wrap
the call in ``guarded``. Anything that is not a ``LeagueError`` (a broken
database, a bug) is not converted and propagates to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from typing import TypeVar

from fantalega.models.outcomes import ErrorKind, Outcome, OutcomeError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LeagueError(Exception):
    """Base class for expected, recoverable failures."""

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str, **detail: object) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_outcome_error(self) -> OutcomeError:
        return OutcomeError(kind=self.kind, message=self.message, detail=self.detail)


class InvalidInput(LeagueError):
    kind = ErrorKind.VALIDATION


class NotAuthenticated(LeagueError):
    kind = ErrorKind.UNAUTHORIZED


class Forbidden(LeagueError):
    kind = ErrorKind.FORBIDDEN


class NotFound(LeagueError):
    kind = ErrorKind.NOT_FOUND


class PreconditionFailed(LeagueError):
    kind = ErrorKind.PRECONDITION


class InsufficientRounds(PreconditionFailed):
    """The calendar has fewer rounds than a full round-robin needs."""

    def __init__(self, needed: int, present: int) -> None:
        super().__init__(
            f"Insufficient rounds: {needed} needed, {present} present",
            needed=needed,
            present=present,
        )
        self.needed = needed
        self.present = present


async def guarded(operation: Awaitable[T]) -> Outcome[T]:
    """Await *operation* and wrap its result or its ``LeagueError`` in an Outcome."""
    try:
        data = await operation
    except LeagueError as exc:
        logger.info("operation_rejected kind=%s message=%s", exc.kind, exc.message)
        return Outcome(ok=False, error=exc.to_outcome_error())
    return Outcome(ok=True, data=data)
