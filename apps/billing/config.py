"""
Centralized billing configuration.

Settings are read at call time so tests can override them with
``override_settings``.
"""

import logging

from django.conf import settings

from apps.common.constants import DAYS_PER_BILLING_MONTH

logger = logging.getLogger(__name__)

BILLING_CYCLES = ("monthly", "quarterly", "semi-annually", "yearly")

# ===============================================================================
# HELPER: SAFE VALUE PARSING
# ===============================================================================


def _get_positive_int(setting_name: str, default: int) -> int:
    """Get a positive integer from settings with validation."""
    value = getattr(settings, setting_name, default)
    try:
        result = int(value)
    except (TypeError, ValueError):
        logger.warning(f"⚠️ [Billing] Invalid {setting_name}={value!r}, using {default}")
        result = default
    return max(1, result)


# ===============================================================================
# SUBSCRIPTION POLICY
# ===============================================================================


def charge_on_subscribe() -> bool:
    """Whether adding a subscription records a charge for price x duration."""
    return bool(getattr(settings, "BILLING_CHARGE_ON_SUBSCRIBE", True))


def get_days_per_month() -> int:
    """Fixed proration month used by the refund calculator."""
    return DAYS_PER_BILLING_MONTH


# ===============================================================================
# AUTO-BILLING
# ===============================================================================


def get_default_billing_cycle() -> str:
    cycle = getattr(settings, "BILLING_DEFAULT_CYCLE", "monthly")
    if cycle not in BILLING_CYCLES:
        logger.warning(f"⚠️ [Billing] Unknown BILLING_DEFAULT_CYCLE={cycle!r}, using monthly")
        return "monthly"
    return cycle


def get_upcoming_window_days() -> int:
    return _get_positive_int("BILLING_UPCOMING_WINDOW_DAYS", 30)


def get_auto_billing_lock_seconds() -> int:
    return _get_positive_int("BILLING_AUTO_BILLING_LOCK_SECONDS", 300)
