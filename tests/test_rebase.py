"""Tests for the currency rebase engine."""

import math
from datetime import date

import pytest

from smartspend.models.ledger import Ledger, Transaction, get_currency
from smartspend.services.currency import (
    RateUnavailableError,
    conversion_factor,
    convert_amount,
    rebase,
    rebase_ledger,
)

USD = get_currency("USD")
EUR = get_currency("EUR")
INR = get_currency("INR")

RATES = {"USD": 1.0, "EUR": 0.9, "INR": 83.0}


class TestConversionFactor:
    """Tests for conversion_factor."""

    def test_ratio_of_rates(self):
        """Factor is rate(to) / rate(from)."""
        assert conversion_factor(RATES, "USD", "EUR") == pytest.approx(0.9)
        assert conversion_factor(RATES, "EUR", "INR") == pytest.approx(83.0 / 0.9)

    def test_same_currency(self):
        """Converting to the same currency is the identity."""
        assert conversion_factor(RATES, "EUR", "EUR") == 1.0

    def test_missing_target_rate(self):
        """A missing target rate is RateUnavailableError naming the code."""
        with pytest.raises(RateUnavailableError) as exc_info:
            conversion_factor({"USD": 1.0}, "USD", "EUR")
        assert exc_info.value.currency_code == "EUR"
        assert exc_info.value.code == "RATE_UNAVAILABLE"

    def test_missing_source_rate(self):
        """A missing source rate is also refused."""
        with pytest.raises(RateUnavailableError):
            conversion_factor({"EUR": 0.9}, "USD", "EUR")

    @pytest.mark.parametrize("bad_rate", [0, -1.5, math.nan, math.inf, "abc", None])
    def test_unusable_rates(self, bad_rate):
        """Zero, negative, non-finite and non-numeric rates are refused."""
        with pytest.raises(RateUnavailableError):
            conversion_factor({"USD": 1.0, "EUR": bad_rate}, "USD", "EUR")

    def test_convert_amount(self):
        """A single amount is scaled by the factor."""
        assert convert_amount(100.0, USD, INR, RATES) == pytest.approx(8300.0)


class TestRebaseLedger:
    """Tests for rebase_ledger and rebase."""

    def test_usd_to_eur_scales_every_amount(self, sample_transactions):
        """Every amount is multiplied by 0.9; nothing else changes."""
        result = rebase_ledger(sample_transactions, USD, EUR, {"USD": 1, "EUR": 0.9})

        assert len(result) == len(sample_transactions)
        for before, after in zip(sample_transactions, result):
            assert after.amount == pytest.approx(before.amount * 0.9)
            assert after.id == before.id
            assert after.category == before.category
            assert after.description == before.description
            assert after.date == before.date

    def test_round_trip_restores_amounts(self, sample_transactions):
        """USD -> EUR -> USD restores the original amounts."""
        table = {"USD": 1, "EUR": 0.9}
        there = rebase_ledger(sample_transactions, USD, EUR, table)
        back = rebase_ledger(there, EUR, USD, table)

        for original, restored in zip(sample_transactions, back):
            assert restored.amount == pytest.approx(original.amount, rel=1e-9)

    def test_input_is_not_modified(self, sample_transactions):
        """A new list of new transactions is returned."""
        before = [tx.amount for tx in sample_transactions]

        result = rebase_ledger(sample_transactions, USD, INR, RATES)

        assert result is not sample_transactions
        assert [tx.amount for tx in sample_transactions] == before
        assert all(new is not old for new, old in zip(result, sample_transactions))

    def test_missing_rate_leaves_ledger_untouched(self, sample_transactions):
        """Missing target rate: error, and the original ledger is unchanged."""
        ledger = Ledger(currency=USD, transactions=sample_transactions)
        fingerprint = ledger.fingerprint()

        with pytest.raises(RateUnavailableError):
            rebase(ledger, EUR, {"USD": 1.0})

        assert ledger.currency == USD
        assert ledger.fingerprint() == fingerprint

    def test_same_currency_keeps_amounts(self, sample_transactions):
        """Rebasing to the current currency leaves amounts exactly equal."""
        result = rebase_ledger(sample_transactions, EUR, EUR, RATES)
        assert [tx.amount for tx in result] == [tx.amount for tx in sample_transactions]

    def test_empty_ledger(self):
        """An empty ledger rebases to an empty ledger."""
        assert rebase_ledger([], USD, EUR, RATES) == []

    def test_rebase_sets_new_currency(self):
        """rebase returns a Ledger carrying the target currency."""
        ledger = Ledger(
            currency=USD,
            transactions=[Transaction(category="Food", amount=10.0, date=date(2024, 1, 1))],
        )

        result = rebase(ledger, INR, RATES)

        assert result.currency == INR
        assert result.transactions[0].amount == pytest.approx(830.0)
        assert result.total() == pytest.approx(830.0)
