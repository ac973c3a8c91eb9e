"""
Cancellation refund calculator.

Refunds are prorated on a flat 30-day month: whatever was charged for the whole
term is spread evenly over ``duration x 30`` days and the unused whole days are
paid back, rounded down to the rupee.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import ROUND_FLOOR, Decimal
from typing import Any, TypedDict

from apps.common.constants import MONEY_QUANTUM, ZERO_AMOUNT
from apps.common.types import ValidationError
from apps.common.validators import validate_financial_amount

from .config import get_days_per_month
from .subscription_models import SubscriptionEntry

logger = logging.getLogger(__name__)


class RefundQuote(TypedDict):
    """Breakdown shown to the operator before a cancellation."""

    total_charged: Decimal
    total_days: int
    remaining_days: int
    price_per_day: Decimal
    suggested_refund: Decimal


class RefundCalculator:
    """Suggests and validates refunds for cancelled subscriptions"""

    @staticmethod
    def remaining_days(entry: SubscriptionEntry, as_of: datetime) -> int:
        """Unused whole days, never negative and never more than the term"""
        total_days = entry.duration * get_days_per_month()
        return min(entry.days_remaining(as_of), total_days)

    @staticmethod
    def compute_refund(entry: SubscriptionEntry, as_of: datetime) -> Decimal:
        total_charged = entry.total_charged
        total_days = entry.duration * get_days_per_month()
        remaining = RefundCalculator.remaining_days(entry, as_of)
        if remaining <= 0 or total_charged <= 0:
            return ZERO_AMOUNT

        # Multiply before dividing so no per-day rounding leaks into the result
        refund = (total_charged * remaining / total_days).to_integral_value(rounding=ROUND_FLOOR)
        return min(refund, total_charged).quantize(MONEY_QUANTUM)

    @staticmethod
    def quote(entry: SubscriptionEntry, as_of: datetime) -> RefundQuote:
        total_days = entry.duration * get_days_per_month()
        return RefundQuote(
            total_charged=entry.total_charged.quantize(MONEY_QUANTUM),
            total_days=total_days,
            remaining_days=RefundCalculator.remaining_days(entry, as_of),
            price_per_day=(entry.total_charged / total_days).quantize(MONEY_QUANTUM),
            suggested_refund=RefundCalculator.compute_refund(entry, as_of),
        )

    @staticmethod
    def validate_refund_amount(entry: SubscriptionEntry, amount: Any) -> Decimal:
        """Operator override: anything from zero up to what was charged"""
        value = validate_financial_amount(amount, "refund_amount", allow_zero=True)
        if value > entry.total_charged:
            raise ValidationError(
                "refund_amount",
                f"{value} exceeds the {entry.total_charged} charged for this subscription",
            )
        return value
