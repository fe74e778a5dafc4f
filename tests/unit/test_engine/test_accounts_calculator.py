"""Tests for the accounts calculator"""
from decimal import Decimal

import pytest

from deedflow.domain.errors import InvalidFeeHeadError, InvalidPaymentError, ValidationError
from deedflow.engine.accounts_calculator import AccountsCalculator, describe_shortfall, has_sub_cent_digits, parse_amount

from tests.conftest import FIXED_NOW


@pytest.fixture
def calculator():
    return AccountsCalculator()


class TestParseAmount:

    @pytest.mark.parametrize("raw,expected", [
        (1000, Decimal("1000")),
        ("250.5", Decimal("250.5")),
        (Decimal("10.005"), Decimal("10.005")),
        (0.1, Decimal("0.1")),
        ("-0.004", Decimal("-0.004")),
    ])
    def test_numeric_values_are_kept_exact(self, raw, expected):
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize("raw", [None, True, "", "  ", "abc", "NaN", float("inf")])
    def test_non_numeric_values(self, raw):
        assert parse_amount(raw) is None

    @pytest.mark.parametrize("amount,expected", [
        ("1500", False),
        ("250.50", False),
        ("1499.995", True),
        ("-0.004", True),
    ])
    def test_sub_cent_digits(self, amount, expected):
        assert has_sub_cent_digits(Decimal(amount)) is expected


class TestCompute:

    def test_total_is_sum_of_heads(self, calculator):
        result = calculator.compute({"arrears": 1000, "transferFee": 500})
        assert result.total == Decimal("1500.00")
        assert result.breakdown_id.startswith("ACB-")

    def test_existing_breakdown_id_is_kept(self, calculator):
        result = calculator.compute({"transferFee": 500}, breakdown_id="ACB-existing")
        assert result.breakdown_id == "ACB-existing"

    def test_empty_fee_heads_total_zero(self, calculator):
        assert calculator.compute({}).total == Decimal("0.00")

    def test_negative_head_rejected(self, calculator):
        with pytest.raises(InvalidFeeHeadError) as exc_info:
            calculator.compute({"arrears": 1000, "surcharge": -5})
        assert "surcharge" in exc_info.value.details["invalid_fee_heads"]
        assert isinstance(exc_info.value, ValidationError)

    def test_non_numeric_head_rejected_not_zeroed(self, calculator):
        with pytest.raises(InvalidFeeHeadError) as exc_info:
            calculator.compute({"arrears": "one thousand", "water": None})
        assert set(exc_info.value.details["invalid_fee_heads"]) == {"arrears", "water"}

    def test_tiny_negative_head_rejected_not_rounded_to_zero(self, calculator):
        with pytest.raises(InvalidFeeHeadError) as exc_info:
            calculator.compute({"arrears": "-0.004"})
        assert exc_info.value.details["invalid_fee_heads"]["arrears"].startswith("negative amount")

    def test_fractional_cent_head_rejected(self, calculator):
        with pytest.raises(InvalidFeeHeadError) as exc_info:
            calculator.compute({"transferFee": "10.005"})
        assert "transferFee" in exc_info.value.details["invalid_fee_heads"]

    def test_heads_are_stored_at_two_places(self, calculator):
        result = calculator.compute({"transferFee": "250.5"})
        assert str(result.fee_heads["transferFee"]) == "250.50"


class TestVerifyPayment:

    @pytest.fixture
    def breakdown(self, calculator):
        computation = calculator.compute({"arrears": 1000, "transferFee": 500})
        return calculator.build_breakdown("APP-test", computation, FIXED_NOW)

    def test_exact_payment_is_sufficient(self, calculator, breakdown):
        result = calculator.verify_payment(breakdown, 1500, "CH-1")
        assert result.sufficient
        assert result.shortfall == Decimal("0.00")
        assert result.reason == "Payment verified"

    def test_overpayment_is_sufficient(self, calculator, breakdown):
        assert calculator.verify_payment(breakdown, "1600", "CH-1").sufficient

    def test_shortfall_is_reported(self, calculator, breakdown):
        result = calculator.verify_payment(breakdown, 1000, "CH-1")
        assert not result.sufficient
        assert result.shortfall == Decimal("500.00")
        assert result.reason == "Payment short by 500.00 (paid 1000.00 of 1500.00)"

    @pytest.mark.parametrize("paid", [-1, "abc", None, "-0.004"])
    def test_invalid_payment(self, calculator, breakdown, paid):
        with pytest.raises(InvalidPaymentError):
            calculator.verify_payment(breakdown, paid)

    def test_fractional_cent_payment_is_never_sufficient(self, calculator, breakdown):
        with pytest.raises(InvalidPaymentError) as exc_info:
            calculator.verify_payment(breakdown, "1499.995", "CH-1")
        assert exc_info.value.details["paid_amount"] == "1499.995"

    def test_apply_payment(self, calculator, breakdown):
        verification = calculator.verify_payment(breakdown, 1500, "CH-1")
        updated = calculator.apply_payment(breakdown, verification, FIXED_NOW)
        assert updated.paid_amount == Decimal("1500.00")
        assert updated.payment_verified
        assert updated.verified_at == FIXED_NOW
        assert updated.challan_ref == "CH-1"
        assert updated.remaining_amount == Decimal("0.00")

    def test_recompute_keeps_payment_and_rechecks_it(self, calculator, breakdown):
        paid = calculator.apply_payment(
            breakdown, calculator.verify_payment(breakdown, 1500, "CH-1"), FIXED_NOW
        )
        computation = calculator.compute(
            {"arrears": 1000, "transferFee": 500, "water": 200}, breakdown_id=paid.breakdown_id
        )
        recomputed = calculator.build_breakdown("APP-test", computation, FIXED_NOW, existing=paid)
        assert recomputed.paid_amount == Decimal("1500.00")
        assert recomputed.total_amount == Decimal("1700.00")
        assert recomputed.remaining_amount == Decimal("200.00")
        assert not recomputed.payment_verified
        assert recomputed.verified_at is None


def test_describe_shortfall():
    assert describe_shortfall(Decimal("10"), Decimal("2.5")) == "Payment short by 7.50 (paid 2.50 of 10.00)"
