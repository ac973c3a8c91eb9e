"""
Auto-billing history.

One row per subscriber per billing attempt. Rows are written once and never
edited; a failed attempt stays failed and the next run writes a new row.
"""

from __future__ import annotations

from typing import Any, ClassVar

from django.db import models
from django.utils.translation import gettext_lazy as _

from apps.common.constants import MONEY_DECIMAL_PLACES, MONEY_MAX_DIGITS, ZERO_AMOUNT
from apps.common.types import ValidationError


class BillingHistoryEntry(models.Model):
    """Outcome of one auto-billing attempt"""

    STATUS_CHOICES: ClassVar[tuple[tuple[str, Any], ...]] = (
        ("scheduled", _("Scheduled")),
        ("charged", _("Charged")),
        ("failed", _("Failed")),
    )

    subscriber = models.ForeignKey(
        "subscribers.Subscriber",
        on_delete=models.CASCADE,
        related_name="billing_history",
    )
    billing_cycle = models.CharField(max_length=20)
    pack_name = models.CharField(max_length=100, blank=True)
    amount = models.DecimalField(
        max_digits=MONEY_MAX_DIGITS,
        decimal_places=MONEY_DECIMAL_PLACES,
        default=ZERO_AMOUNT,
    )
    due_date = models.DateField(null=True, blank=True)
    generated_at = models.DateTimeField()
    transaction = models.ForeignKey(
        "billing.Transaction",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="billing_history",
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, db_index=True)
    failure_reason = models.TextField(blank=True)

    class Meta:
        db_table = "billing_history"
        verbose_name = _("Billing History Entry")
        verbose_name_plural = _("Billing History")
        ordering = ("-generated_at", "-id")
        indexes = (models.Index(fields=["subscriber", "-generated_at"], name="idx_billing_subscriber_gen"),)

    def __str__(self) -> str:
        return f"{self.subscriber_id} {self.billing_cycle} {self.amount} ({self.status})"

    def save(self, *args: Any, **kwargs: Any) -> None:  # noqa: DJ012
        if not self._state.adding:
            raise ValidationError("billing_history", "history entries are write-once")
        super().save(*args, **kwargs)
