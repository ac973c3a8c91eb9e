"""
Pack catalog and service regions.

Packs are referenced by name from subscribers; subscription entries keep their
own price snapshot, so editing a pack never rewrites billing history.
"""

from __future__ import annotations

from typing import ClassVar

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _

from apps.common.constants import MONEY_DECIMAL_PLACES, MONEY_MAX_DIGITS, ZERO_AMOUNT


class Pack(models.Model):
    """Channel pack offered to subscribers"""

    name = models.CharField(max_length=100, unique=True)
    price = models.DecimalField(
        max_digits=MONEY_MAX_DIGITS,
        decimal_places=MONEY_DECIMAL_PLACES,
        validators=[MinValueValidator(ZERO_AMOUNT)],
        help_text=_("Price per month"),
    )
    channels = models.TextField(blank=True, help_text=_("Channel line-up, free text"))
    is_active = models.BooleanField(
        default=True,
        help_text=_("Retired packs can no longer be subscribed to but still bill existing subscribers"),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "catalog_packs"
        verbose_name = _("Pack")
        verbose_name_plural = _("Packs")
        ordering = ("name",)
        constraints: ClassVar[list] = [
            models.CheckConstraint(condition=Q(price__gte=0), name="pack_price_non_negative"),
        ]

    def __str__(self) -> str:
        return f"{self.name} (₹{self.price}/month)"

    def clean(self) -> None:
        super().clean()
        if not (self.name or "").strip():
            raise ValidationError(_("Pack name is required"))
        if self.price is not None and self.price < 0:
            raise ValidationError(_("Pack price cannot be negative"))


class Region(models.Model):
    """Service area a subscriber belongs to"""

    name = models.CharField(max_length=100, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "catalog_regions"
        verbose_name = _("Region")
        verbose_name_plural = _("Regions")
        ordering = ("name",)

    def __str__(self) -> str:
        return self.name
