"""
Unit Tests for currency normalization.
"""

import random
import pytest
from decimal import Decimal
from app.tests.conftest import make_expense, make_raw_expense
from app.utils.currency import convert_amount, normalize_expense, round_half_up


@pytest.mark.unit
class TestRoundHalfUp:
    """Test the round_half_up utility function."""

    @pytest.mark.parametrize("value,expected", [
        ("2.5", 3),
        ("3.5", 4),
        ("2.4999", 2),
        ("-2.5", -3),
        ("0.5", 1),
        ("100", 100),
    ])
    def test_halves_round_away_from_zero(self, value, expected):
        assert round_half_up(Decimal(value)) == expected

    def test_convert_amount(self):
        assert convert_amount(1000, Decimal("1.12")) == 1120
        # 1005 * 0.5 = 502.5 rounds up, not to even
        assert convert_amount(1005, Decimal("0.5")) == 503


@pytest.mark.unit
class TestNormalizeExpense:
    """Test normalize_expense."""

    def test_base_currency_passes_through(self):
        expense = make_expense("e1", "alice", 9000, ["alice", "bob", "carol"])
        result = normalize_expense(expense, "EUR")

        assert result.amount == 9000
        assert result.rate == Decimal("1")
        assert result.converted is False
        assert result.needs_conversion is False
        assert [s.share_amount for s in result.shares] == [3000, 3000, 3000]

    def test_currency_comparison_is_case_insensitive(self):
        expense = make_expense("e1", "alice", 100, ["alice"])
        assert normalize_expense(expense, "eur").needs_conversion is False

    def test_foreign_currency_uses_snapshot_rate(self):
        expense = make_expense("e1", "alice", 10000, ["alice", "bob"], currency="USD", fx_rate=Decimal("0.9"))
        result = normalize_expense(expense, "EUR")

        assert result.amount == 9000
        assert result.currency == "EUR"
        assert result.converted is True
        assert [s.share_amount for s in result.shares] == [4500, 4500]

    def test_missing_rate_flags_needs_conversion(self):
        expense = make_expense("e1", "alice", 10000, ["alice", "bob"], currency="USD")
        result = normalize_expense(expense, "EUR")

        assert result.needs_conversion is True
        assert result.expense_id == "e1"
        assert result.shares == []

    def test_shares_sum_to_converted_total(self):
        # Three shares of 333/333/334 at 1.005: direct conversion gives 335 + 335 + 336 = 1006,
        # but the total converts to 1005
        expense = make_raw_expense(
            "e1", "alice", 1000, {"alice": 333, "bob": 333, "carol": 334},
            currency="USD", fx_rate=Decimal("1.005"),
        )
        result = normalize_expense(expense, "EUR")

        assert result.amount == 1005
        assert sum(s.share_amount for s in result.shares) == 1005
        direct = [convert_amount(a, Decimal("1.005")) for a in (333, 333, 334)]
        assert all(abs(s.share_amount - d) <= 1 for s, d in zip(result.shares, direct))

    @pytest.mark.parametrize("seed", range(25))
    def test_converted_shares_preserve_sum_invariant(self, seed):
        rng = random.Random(seed)
        amount = rng.randint(1, 1_000_000)
        users = [f"u{i}" for i in range(rng.randint(1, 8))]
        rate = Decimal(rng.randint(1, 500_000)) / Decimal(10_000)

        expense = make_expense("e1", users[0], amount, users, currency="JPY", fx_rate=rate)
        result = normalize_expense(expense, "EUR")

        assert result.amount == convert_amount(amount, rate)
        assert sum(s.share_amount for s in result.shares) == result.amount
        assert [s.user_id for s in result.shares] == users
