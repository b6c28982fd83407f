"""Tests for round scoring and points parsing."""

from decimal import Decimal

from fantalega.core.scoring import (
    build_results_map,
    parse_points,
    same_score,
    score_team,
    to_decimal,
)


class TestScoreTeam:
    def test_duplicates_count_once(self):
        results = {"alice": Decimal(20), "bob": Decimal(15)}
        with_dupes = score_team(["Alice", "ALICE", "bob"], results)
        without = score_team(["alice", "bob"], results)
        assert with_dupes == without == Decimal(35)

    def test_missing_player_contributes_zero(self):
        results = {"alice": Decimal(20)}
        assert score_team(["alice", "nobody"], results) == Decimal(20)
        assert score_team(["nobody"], results) == Decimal(0)

    def test_empty_lineup_scores_zero(self):
        assert score_team([], {"alice": Decimal(20)}) == Decimal(0)

    def test_fractional_points_kept(self):
        results = {"a": Decimal("6.5"), "b": Decimal("0.25")}
        assert score_team(["a", "b"], results) == Decimal("6.75")

    def test_negative_points(self):
        results = {"a": Decimal(-2), "b": Decimal(5)}
        assert score_team(["a", "b"], results) == Decimal(3)


class TestBuildResultsMap:
    def test_keys_are_normalized(self):
        results = build_results_map([("  Alice ", 20), ("BOB", "15.5")])
        assert results == {"alice": Decimal(20), "bob": Decimal("15.5")}

    def test_blank_names_dropped_and_last_wins(self):
        results = build_results_map([("", 5), ("a", 1), ("A", 3)])
        assert results == {"a": Decimal(3)}

    def test_none_points_are_zero(self):
        assert build_results_map([("a", None)]) == {"a": Decimal(0)}


class TestParsePoints:
    def test_numbers(self):
        assert parse_points(7) == Decimal(7)
        assert parse_points(6.5) == Decimal("6.5")

    def test_decimal_comma(self):
        assert parse_points("6,5") == Decimal("6.5")

    def test_strings_with_dot(self):
        assert parse_points(" 10.25 ") == Decimal("10.25")

    def test_rejects_non_numeric(self):
        assert parse_points("abc") is None
        assert parse_points("") is None
        assert parse_points(None) is None
        assert parse_points(True) is None

    def test_rejects_non_finite(self):
        assert parse_points(float("nan")) is None
        assert parse_points("inf") is None

    def test_rejects_more_than_two_decimals(self):
        assert parse_points("6.125") is None
        assert parse_points(Decimal("0.001")) is None
        assert parse_points("6.120") == Decimal("6.12")

    def test_rejects_values_too_large_to_store(self):
        assert parse_points("1e10") is None
        assert parse_points(9_999_999_999) == Decimal(9_999_999_999)


class TestDecimalHelpers:
    def test_to_decimal_goes_through_str(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_same_score(self):
        assert same_score(Decimal("5.00"), Decimal(5))
        assert same_score(None, None)
        assert not same_score(None, Decimal(0))
        assert not same_score(Decimal(1), Decimal(2))
