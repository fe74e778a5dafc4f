"""Accounts Calculator - Fee breakdown, totals and payment verification"""
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Mapping, Optional

from ..domain.models import AccountsBreakdown, FeeComputation, PaymentVerification
from ..domain.errors import InvalidFeeHeadError, InvalidPaymentError
from ..utils.idgen import generate_breakdown_id
from ..utils.logger import get_logger

logger = get_logger(__name__)

CENT = Decimal("0.01")


def parse_amount(value: Any) -> Optional[Decimal]:
    """
    Convert a numeric value to an exact Decimal, without rounding

    Returns None for anything that is not a finite number (booleans, None,
    blank or malformed strings, NaN, infinities).
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None
    if not amount.is_finite():
        return None
    return amount


def has_sub_cent_digits(amount: Decimal) -> bool:
    """True if the amount carries more than two decimal places"""
    return amount != amount.quantize(CENT, rounding=ROUND_HALF_UP)


def describe_shortfall(total: Decimal, paid: Decimal) -> str:
    """Human readable shortfall message"""
    shortfall = (total - paid).quantize(CENT)
    return f"Payment short by {shortfall} (paid {paid.quantize(CENT)} of {total.quantize(CENT)})"


class AccountsCalculator:
    """
    Compute fee totals and compare payments against them

    Totals are the sum of all provided fee heads. A negative or non-numeric
    head is rejected with InvalidFeeHeadError; nothing is silently zeroed.
    """

    def compute(
        self,
        fee_heads: Mapping[str, Any],
        breakdown_id: Optional[str] = None
    ) -> FeeComputation:
        """
        Validate fee heads and sum them

        Args:
            fee_heads: Fee head name -> amount (Decimal, int, float or numeric string)
            breakdown_id: Existing breakdown ID to keep, a new one is generated otherwise

        Raises:
            InvalidFeeHeadError: On a blank name, a non-numeric or negative amount,
                or an amount with fractions of a cent
        """
        validated: Dict[str, Decimal] = {}
        invalid: Dict[str, str] = {}

        for name, raw in fee_heads.items():
            if not isinstance(name, str) or not name.strip():
                invalid[str(name)] = "fee head name is blank"
                continue
            amount = parse_amount(raw)
            if amount is None:
                invalid[name] = f"not a number: {raw!r}"
            elif amount < 0:
                invalid[name] = f"negative amount: {amount}"
            elif has_sub_cent_digits(amount):
                invalid[name] = f"more than two decimal places: {amount}"
            else:
                validated[name] = amount.quantize(CENT)

        if invalid:
            heads = ", ".join(sorted(invalid))
            raise InvalidFeeHeadError(
                f"Invalid fee heads: {heads}",
                details={"invalid_fee_heads": invalid}
            )

        total = sum(validated.values(), Decimal("0.00"))
        return FeeComputation(
            breakdown_id=breakdown_id or generate_breakdown_id(),
            fee_heads=validated,
            total=total,
        )

    def build_breakdown(
        self,
        case_id: str,
        computation: FeeComputation,
        now: datetime,
        existing: Optional[AccountsBreakdown] = None,
        challan_ref: Optional[str] = None
    ) -> AccountsBreakdown:
        """
        Create the case's breakdown or recompute an existing one

        A payment already recorded is kept and re-compared against the new total.
        """
        paid = existing.paid_amount if existing else None
        remaining = self._remaining(computation.total, paid)
        verified = paid is not None and paid >= computation.total

        if existing is None:
            return AccountsBreakdown(
                breakdown_id=computation.breakdown_id,
                case_id=case_id,
                fee_heads=computation.fee_heads,
                total_amount=computation.total,
                paid_amount=None,
                remaining_amount=remaining,
                challan_ref=challan_ref,
                created_at=now,
                updated_at=now,
            )

        return existing.model_copy(update={
            "fee_heads": computation.fee_heads,
            "total_amount": computation.total,
            "remaining_amount": remaining,
            "payment_verified": verified,
            "verified_at": existing.verified_at if verified else None,
            "challan_ref": challan_ref or existing.challan_ref,
            "updated_at": now,
        })

    def verify_payment(
        self,
        breakdown: AccountsBreakdown,
        paid_amount: Any,
        challan_ref: Optional[str] = None
    ) -> PaymentVerification:
        """
        Compare a paid amount against the computed total

        Exact or greater payment is sufficient; a shortfall is reported in the reason.

        Raises:
            InvalidPaymentError: If paid_amount is negative, not numeric or has
                fractions of a cent
        """
        paid = parse_amount(paid_amount)
        if paid is None or paid < 0 or has_sub_cent_digits(paid):
            raise InvalidPaymentError(
                f"Invalid paid amount: {paid_amount!r}",
                details={"paid_amount": str(paid_amount)}
            )

        paid = paid.quantize(CENT)
        total = breakdown.total_amount
        shortfall = self._remaining(total, paid)
        sufficient = paid >= total
        reason = "Payment verified" if sufficient else describe_shortfall(total, paid)

        if not sufficient:
            logger.info(
                f"Payment shortfall for case {breakdown.case_id}: {shortfall}",
                extra={"case_id": breakdown.case_id}
            )

        return PaymentVerification(
            total_amount=total,
            paid_amount=paid,
            shortfall=shortfall,
            sufficient=sufficient,
            challan_ref=challan_ref,
            reason=reason,
        )

    def apply_payment(
        self,
        breakdown: AccountsBreakdown,
        verification: PaymentVerification,
        now: datetime
    ) -> AccountsBreakdown:
        """Record a verified payment on the breakdown"""
        return breakdown.model_copy(update={
            "paid_amount": verification.paid_amount,
            "remaining_amount": verification.shortfall,
            "challan_ref": verification.challan_ref or breakdown.challan_ref,
            "payment_verified": verification.sufficient,
            "verified_at": now if verification.sufficient else None,
            "updated_at": now,
        })

    @staticmethod
    def _remaining(total: Decimal, paid: Optional[Decimal]) -> Decimal:
        remaining = total - (paid or Decimal("0.00"))
        return max(remaining, Decimal("0.00")).quantize(CENT)
