"""
Subscriber registry models.

``Subscriber.balance`` is a denormalized cache of the transaction ledger:
positive means the subscriber owes money. Only the ledger service writes it.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any, ClassVar

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models, transaction
from django.db.models import F
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from apps.common.constants import (
    MONEY_DECIMAL_PLACES,
    MONEY_MAX_DIGITS,
    SUBSCRIBER_CODE_DIGITS,
    SUBSCRIBER_CODE_PREFIX,
    ZERO_AMOUNT,
)
from apps.common.validators import log_security_event

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from apps.billing.subscription_models import SubscriptionEntry

logger = logging.getLogger(__name__)

# ===============================================================================
# SUBSCRIBER CODE SEQUENCE
# ===============================================================================


class SubscriberSequence(models.Model):
    """Persisted counter behind SUB-000001 style subscriber codes"""

    scope = models.CharField(max_length=50, default="subscriber", unique=True)
    last_value = models.BigIntegerField(default=0)

    class Meta:
        db_table = "subscriber_sequence"
        verbose_name = _("Subscriber Sequence")
        verbose_name_plural = _("Subscriber Sequences")

    def get_next_code(self, prefix: str = SUBSCRIBER_CODE_PREFIX) -> str:
        """Increment atomically and format the next code"""
        with transaction.atomic():
            SubscriberSequence.objects.filter(pk=self.pk).update(last_value=F("last_value") + 1)
            self.refresh_from_db()
            return f"{prefix}-{self.last_value:0{SUBSCRIBER_CODE_DIGITS}d}"

    @classmethod
    def next_code(cls, scope: str = "subscriber") -> str:
        sequence, _created = cls.objects.get_or_create(scope=scope)
        return sequence.get_next_code()


# ===============================================================================
# SUBSCRIBER
# ===============================================================================


class Subscriber(models.Model):
    """A cable TV customer"""

    BILLING_CYCLE_CHOICES: ClassVar[tuple[tuple[str, Any], ...]] = (
        ("monthly", _("Monthly")),
        ("quarterly", _("Quarterly")),
        ("semi-annually", _("Semi-Annually")),
        ("yearly", _("Yearly")),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    code = models.CharField(
        max_length=20,
        unique=True,
        help_text=_("Human readable identifier, e.g. SUB-000001"),
    )

    # Contact and location
    name = models.CharField(max_length=200)
    mobile = models.CharField(max_length=20, blank=True)
    stb_number = models.CharField(max_length=100, blank=True, help_text=_("Serial of the assigned set-top box"))
    region = models.CharField(max_length=100, blank=True, db_index=True)
    latitude = models.DecimalField(
        max_digits=9,
        decimal_places=6,
        null=True,
        blank=True,
        validators=[MinValueValidator(-90), MaxValueValidator(90)],
    )
    longitude = models.DecimalField(
        max_digits=9,
        decimal_places=6,
        null=True,
        blank=True,
        validators=[MinValueValidator(-180), MaxValueValidator(180)],
    )

    # Ledger cache
    balance = models.DecimalField(
        max_digits=MONEY_MAX_DIGITS,
        decimal_places=MONEY_DECIMAL_PLACES,
        default=ZERO_AMOUNT,
        help_text=_("Amount owed; negative means credit"),
    )

    # Billing configuration
    current_pack = models.CharField(max_length=100, blank=True, db_index=True)
    billing_cycle = models.CharField(max_length=20, choices=BILLING_CYCLE_CHOICES, default="monthly")
    next_billing_date = models.DateField(null=True, blank=True, db_index=True)
    auto_charge_enabled = models.BooleanField(default=False)
    last_billing_date = models.DateTimeField(null=True, blank=True)

    join_date = models.DateField(default=timezone.localdate)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "subscribers"
        verbose_name = _("Subscriber")
        verbose_name_plural = _("Subscribers")
        ordering = ("-created_at",)
        indexes = (
            models.Index(fields=["auto_charge_enabled", "next_billing_date"], name="idx_subscriber_autobill_due"),
            models.Index(fields=["mobile"], name="idx_subscriber_mobile"),
        )

    def __str__(self) -> str:
        return f"{self.code} - {self.name}"

    def clean(self) -> None:
        super().clean()
        if not (self.name or "").strip():
            raise ValidationError(_("Subscriber name is required"))
        if self.auto_charge_enabled and not self.next_billing_date:
            raise ValidationError(_("Auto-charge requires a next billing date"))

    def save(self, *args: Any, **kwargs: Any) -> None:  # noqa: DJ012
        if not self.code:
            self.code = SubscriberSequence.next_code()
            log_security_event(
                event_type="subscriber_code_generated",
                details={"subscriber_code": self.code},
            )
        self.clean()
        super().save(*args, **kwargs)

    # =========================================================================
    # SUBSCRIPTION VIEWS
    # =========================================================================

    @property
    def current_subscription(self) -> SubscriptionEntry | None:
        """The entry whose stored status is active, if any"""
        return self.subscription_entries.filter(status="active").first()

    @property
    def subscription_history(self) -> QuerySet[SubscriptionEntry]:
        """Every entry ever created for this subscriber, oldest first"""
        return self.subscription_entries.order_by("subscribed_at", "id")

    @property
    def owes_money(self) -> bool:
        return self.balance > 0
