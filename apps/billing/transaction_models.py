"""
Transaction log models.

Every change to a subscriber's balance is backed by one Transaction row.
Charges raise the balance (the subscriber owes more); payments and refunds
lower it.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, ClassVar

from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from apps.common.constants import MONEY_DECIMAL_PLACES, MONEY_MAX_DIGITS, MONEY_QUANTUM

# Sign applied to the amount when folding a transaction into the balance
BALANCE_DIRECTION: dict[str, int] = {
    "charge": 1,
    "payment": -1,
    "refund": -1,
}


def balance_effect(transaction_type: str, amount: Decimal) -> Decimal:
    """Signed change a transaction makes to the balance"""
    return BALANCE_DIRECTION[transaction_type] * amount


class Transaction(models.Model):
    """A single balance-affecting money movement"""

    TYPE_CHOICES: ClassVar[tuple[tuple[str, Any], ...]] = (
        ("payment", _("Payment")),
        ("charge", _("Charge")),
        ("refund", _("Refund")),
    )

    subscriber = models.ForeignKey(
        "subscribers.Subscriber",
        on_delete=models.CASCADE,
        related_name="transactions",
    )
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    amount = models.DecimalField(
        max_digits=MONEY_MAX_DIGITS,
        decimal_places=MONEY_DECIMAL_PLACES,
        validators=[MinValueValidator(MONEY_QUANTUM)],
    )
    description = models.CharField(max_length=500, blank=True)
    date = models.DateTimeField(default=timezone.now, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "transactions"
        verbose_name = _("Transaction")
        verbose_name_plural = _("Transactions")
        ordering = ("-date", "-id")
        indexes = (models.Index(fields=["subscriber", "-date"], name="idx_txn_subscriber_date"),)
        constraints: ClassVar[list] = [
            models.CheckConstraint(condition=Q(amount__gt=0), name="transaction_amount_positive"),
            models.CheckConstraint(
                condition=Q(type__in=list(BALANCE_DIRECTION)),
                name="transaction_type_known",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.type} {self.amount} ({self.subscriber_id})"

    @property
    def balance_effect(self) -> Decimal:
        return balance_effect(self.type, self.amount)
