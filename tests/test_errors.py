"""Tests for domain errors and their conversion to outcomes."""

import pytest

from fantalega.core.errors import (
    Forbidden,
    InsufficientRounds,
    InvalidInput,
    NotFound,
    PreconditionFailed,
    guarded,
)
from fantalega.models.outcomes import ErrorKind


async def _ok() -> int:
    return 7


async def _fail(exc: Exception) -> int:
    raise exc


class TestGuarded:
    async def test_success(self):
        outcome = await guarded(_ok())
        assert outcome.ok is True
        assert outcome.data == 7
        assert outcome.error is None

    @pytest.mark.parametrize(
        ("exc", "kind"),
        [
            (InvalidInput("bad"), ErrorKind.VALIDATION),
            (Forbidden("no"), ErrorKind.FORBIDDEN),
            (NotFound("gone"), ErrorKind.NOT_FOUND),
            (PreconditionFailed("later"), ErrorKind.PRECONDITION),
        ],
    )
    async def test_league_errors_become_outcomes(self, exc, kind):
        outcome = await guarded(_fail(exc))
        assert outcome.ok is False
        assert outcome.error.kind == kind
        assert outcome.error.message == exc.message

    async def test_insufficient_rounds_detail(self):
        outcome = await guarded(_fail(InsufficientRounds(needed=5, present=4)))
        assert outcome.error.kind == ErrorKind.PRECONDITION
        assert outcome.error.detail == {"needed": 5, "present": 4}

    async def test_unexpected_errors_propagate(self):
        with pytest.raises(RuntimeError):
            await guarded(_fail(RuntimeError("boom")))
