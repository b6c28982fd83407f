"""Round scoring: team score = sum of points of the distinct lineup players.

Points are kept as ``Decimal`` end to end so fractional scores (e.g. 6.5)
never lose precision through float arithmetic or integer truncation.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal, InvalidOperation

from fantalega.core.names import distinct_players, normalize_name

ZERO = Decimal(0)


def to_decimal(value: object) -> Decimal:
    """Convert a stored or supplied point value to Decimal; ``None`` is zero."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    # Through str so 0.1 stays 0.1 instead of its binary expansion.
    return Decimal(str(value))


# Stored points have two decimals and at most ten integer digits.
POINTS_QUANTUM = Decimal("0.01")
POINTS_LIMIT = Decimal(10) ** 10


def _storable(value: Decimal) -> Decimal | None:
    if not value.is_finite() or abs(value) >= POINTS_LIMIT:
        return None
    return value if value == value.quantize(POINTS_QUANTUM) else None


def parse_points(raw: object) -> Decimal | None:
    """Parse a user-supplied points value, or None if it cannot be stored as is.

    Accepts numbers and numeric strings. A string with a comma and no dot is
    read with the comma as decimal separator ("6,5" -> 6.5). Values with more
    than two decimals are rejected rather than rounded.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float, Decimal)):
        try:
            return _storable(to_decimal(raw))
        except InvalidOperation:
            return None
    text = str(raw if raw is not None else "").strip()
    if not text:
        return None
    if "," in text and "." not in text:
        text = text.replace(",", ".")
    try:
        return _storable(Decimal(text))
    except InvalidOperation:
        return None


def build_results_map(rows: Iterable[tuple[str, object]]) -> dict[str, Decimal]:
    """Index (player, points) pairs by normalized player name.

    Blank names are dropped. A later row for the same player replaces an
    earlier one, matching the one-result-per-player-per-round rule.
    """
    results: dict[str, Decimal] = {}
    for player, points in rows:
        key = normalize_name(player)
        if key:
            results[key] = to_decimal(points)
    return results


def score_team(entries: Iterable[str], results: Mapping[str, Decimal]) -> Decimal:
    """Score a lineup against a round's results.

    A player listed twice counts once; a player with no recorded result
    contributes zero. An empty lineup scores zero.
    """
    total = ZERO
    for player in distinct_players(list(entries)):
        total += results.get(player, ZERO)
    return total


def same_score(a: Decimal | None, b: Decimal | None) -> bool:
    """Compare two nullable scores numerically (Decimal('5.0') == Decimal('5'))."""
    if a is None or b is None:
        return a is None and b is None
    return a == b
