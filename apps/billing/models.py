"""
Billing models.

Re-export hub so Django discovers the models split across feature modules.
"""

from .billing_models import BillingHistoryEntry
from .subscription_models import SubscriptionEntry
from .transaction_models import BALANCE_DIRECTION, Transaction, balance_effect

__all__ = [
    "BALANCE_DIRECTION",
    "BillingHistoryEntry",
    "SubscriptionEntry",
    "Transaction",
    "balance_effect",
]
