"""
Input validation helpers and audit logging shared across apps.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from apps.common.constants import MAX_TRANSACTION_AMOUNT, MONEY_QUANTUM
from apps.common.types import ValidationError

logger = logging.getLogger(__name__)


def to_money(value: Any, field_name: str = "amount") -> Decimal:
    """Coerce ``value`` to a two-place Decimal or raise ValidationError."""
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise ValidationError(field_name, f"not a valid amount: {value!r}") from e
    if not amount.is_finite():
        raise ValidationError(field_name, f"not a valid amount: {value!r}")
    return amount.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def validate_financial_amount(
    value: Any, field_name: str = "amount", *, allow_zero: bool = False, allow_negative: bool = False
) -> Decimal:
    """🔒 Validate an operator-entered amount and return it quantized"""
    amount = to_money(value, field_name)

    if amount > MAX_TRANSACTION_AMOUNT or amount < -MAX_TRANSACTION_AMOUNT:
        raise ValidationError(field_name, f"exceeds the maximum of {MAX_TRANSACTION_AMOUNT:,.2f}")
    if amount < 0 and not allow_negative:
        raise ValidationError(field_name, "must not be negative")
    if amount == 0 and not allow_zero:
        raise ValidationError(field_name, "must be greater than zero")
    return amount


def validate_choice(value: Any, choices: Any, field_name: str) -> str:
    """Check ``value`` against a Django choices tuple."""
    allowed = [key for key, _label in choices]
    if value not in allowed:
        raise ValidationError(field_name, f"must be one of {', '.join(allowed)}; got {value!r}")
    return str(value)


# ===============================================================================
# AUDIT LOGGING
# ===============================================================================


def log_security_event(event_type: str, details: dict[str, Any], request_ip: str | None = None) -> None:
    """
    Log financially relevant events for monitoring and forensics
    """
    try:
        logger.warning(f"🚨 [Security] {event_type}: {details} from IP: {request_ip}")
    except Exception as e:
        logger.error(f"Failed to log security event: {e}")
