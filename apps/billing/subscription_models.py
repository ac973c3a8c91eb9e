"""
Subscription ledger models.

A SubscriptionEntry is a frozen record of a pack sold to a subscriber for a
number of months. After creation only its status may move, and only out of
``active``; everything else about the sale is kept as it was.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar

from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _

from apps.common.constants import MONEY_DECIMAL_PLACES, MONEY_MAX_DIGITS, ZERO_AMOUNT
from apps.common.types import ValidationError

logger = logging.getLogger(__name__)

# Fields that may change after an entry is created
MUTABLE_ENTRY_FIELDS = frozenset({"status", "ended_at"})

ALLOWED_STATUS_TRANSITIONS: dict[str, frozenset[str]] = {
    "active": frozenset({"expired", "cancelled"}),
    "expired": frozenset(),
    "cancelled": frozenset(),
}

SECONDS_PER_DAY = 86400


class SubscriptionEntry(models.Model):
    """
    One pack purchase in a subscriber's history.

    The pack name and monthly price are snapshotted at purchase time, so later
    catalog edits never change what was sold.
    """

    STATUS_CHOICES: ClassVar[tuple[tuple[str, Any], ...]] = (
        ("active", _("Active")),
        ("expired", _("Expired")),
        ("cancelled", _("Cancelled")),
    )

    subscriber = models.ForeignKey(
        "subscribers.Subscriber",
        on_delete=models.CASCADE,
        related_name="subscription_entries",
    )

    # Snapshot of the pack at purchase time
    pack_name = models.CharField(max_length=100)
    pack_price = models.DecimalField(
        max_digits=MONEY_MAX_DIGITS,
        decimal_places=MONEY_DECIMAL_PLACES,
        validators=[MinValueValidator(ZERO_AMOUNT)],
        help_text=_("Monthly price when the subscription was sold"),
    )

    start_date = models.DateTimeField()
    end_date = models.DateTimeField(db_index=True)
    duration = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text=_("Length in calendar months"),
    )

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="active", db_index=True)
    subscribed_at = models.DateTimeField()
    ended_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text=_("When the entry left the active state"),
    )

    class Meta:
        db_table = "subscription_entries"
        verbose_name = _("Subscription Entry")
        verbose_name_plural = _("Subscription Entries")
        ordering = ("-subscribed_at",)
        indexes = (
            models.Index(fields=["subscriber", "status"], name="idx_entry_subscriber_status"),
            models.Index(
                fields=["end_date"],
                condition=Q(status="active"),
                name="idx_active_entry_end_date",
            ),
        )
        constraints: ClassVar[list] = [
            models.UniqueConstraint(
                fields=["subscriber"],
                condition=Q(status="active"),
                name="one_active_subscription_per_subscriber",
            ),
            models.CheckConstraint(condition=Q(duration__gte=1), name="subscription_entry_duration_positive"),
            models.CheckConstraint(condition=Q(pack_price__gte=0), name="subscription_entry_price_non_negative"),
        ]

    def __str__(self) -> str:
        return f"{self.pack_name} x{self.duration} ({self.status})"

    def save(self, *args: Any, **kwargs: Any) -> None:  # noqa: DJ012
        if not self._state.adding:
            self._guard_frozen_fields()
        elif self.end_date <= self.start_date:
            raise ValidationError("end_date", "must be after start_date")
        super().save(*args, **kwargs)

    def _guard_frozen_fields(self) -> None:
        stored = SubscriptionEntry.objects.filter(pk=self.pk).values().first()
        if stored is None:
            return
        for field in self._meta.concrete_fields:
            if field.name in MUTABLE_ENTRY_FIELDS:
                continue
            if stored[field.attname] != getattr(self, field.attname):
                raise ValidationError(field.name, "subscription entries cannot be edited after creation")

        old_status = stored["status"]
        if self.status != old_status and self.status not in ALLOWED_STATUS_TRANSITIONS.get(old_status, ()):
            raise ValidationError("status", f"cannot move from {old_status} to {self.status}")

    # =========================================================================
    # DERIVED VALUES
    # =========================================================================

    @property
    def total_charged(self) -> Decimal:
        """What the subscriber paid for the whole term"""
        return self.pack_price * self.duration

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def is_lapsed(self, as_of: datetime) -> bool:
        """Still flagged active but past its end date"""
        return self.status == "active" and self.end_date <= as_of

    def days_remaining(self, as_of: datetime) -> int:
        """Whole days left until the end date; zero once it has passed"""
        seconds = (self.end_date - as_of).total_seconds()
        if seconds <= 0:
            return 0
        return math.floor(seconds / SECONDS_PER_DAY)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def mark_expired(self, at: datetime) -> None:
        self._end("expired", at)

    def mark_cancelled(self, at: datetime) -> None:
        self._end("cancelled", at)

    def _end(self, status: str, at: datetime) -> None:
        if self.status != "active":
            raise ValidationError("status", f"cannot move from {self.status} to {status}")
        self.status = status
        self.ended_at = at
        self.save(update_fields=["status", "ended_at"])
        logger.info(f"📺 [Subscription] {self.subscriber_id}: {self.pack_name} -> {status}")
