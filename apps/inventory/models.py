"""
Set-top box inventory models.
"""

from __future__ import annotations

from typing import Any, ClassVar

from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _


class SetTopBox(models.Model):
    """A set-top box in stock, with a subscriber, or out of service"""

    STATUS_CHOICES: ClassVar[tuple[tuple[str, Any], ...]] = (
        ("available", _("Available")),
        ("assigned", _("Assigned")),
        ("faulty", _("Faulty")),
        ("decommissioned", _("Decommissioned")),
    )

    serial_number = models.CharField(max_length=100, unique=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="available", db_index=True)
    subscriber = models.ForeignKey(
        "subscribers.Subscriber",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="set_top_boxes",
    )
    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "stb_inventory"
        verbose_name = _("Set-Top Box")
        verbose_name_plural = _("Set-Top Boxes")
        ordering = ("serial_number",)
        constraints: ClassVar[list] = [
            models.CheckConstraint(
                condition=Q(status="assigned", subscriber__isnull=False) | ~Q(status="assigned"),
                name="stb_assigned_has_subscriber",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.serial_number} ({self.status})"
