"""
Platform constants

Business rules shared by more than one app. Values that operators may tune
live in Django settings and are read through each app's config module.
"""

from decimal import Decimal
from typing import Final

# ===============================================================================
# MONEY 💰
# ===============================================================================

MONEY_MAX_DIGITS: Final[int] = 12
MONEY_DECIMAL_PLACES: Final[int] = 2
MONEY_QUANTUM: Final[Decimal] = Decimal("0.01")
ZERO_AMOUNT: Final[Decimal] = Decimal("0.00")

# Upper bound for any single amount entered by an operator
MAX_TRANSACTION_AMOUNT: Final[Decimal] = Decimal("10000000.00")

# ===============================================================================
# SUBSCRIPTIONS 📺
# ===============================================================================

# Refunds are prorated against a 30-day month regardless of calendar length
DAYS_PER_BILLING_MONTH: Final[int] = 30

MAX_SUBSCRIPTION_MONTHS: Final[int] = 120

# A subscription with this many days or fewer left is flagged as expiring
EXPIRING_SOON_DAYS: Final[int] = 7

# ===============================================================================
# IDENTIFIERS
# ===============================================================================

SUBSCRIBER_CODE_PREFIX: Final[str] = "SUB"
SUBSCRIBER_CODE_DIGITS: Final[int] = 6
