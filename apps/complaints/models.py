"""
Subscriber complaint models.
"""

from __future__ import annotations

from typing import Any, ClassVar

from django.db import models
from django.utils.translation import gettext_lazy as _


class Complaint(models.Model):
    """A service issue raised by a subscriber"""

    CATEGORY_CHOICES: ClassVar[tuple[tuple[str, Any], ...]] = (
        ("technical", _("Technical")),
        ("billing", _("Billing")),
        ("service", _("Service")),
        ("other", _("Other")),
    )

    PRIORITY_CHOICES: ClassVar[tuple[tuple[str, Any], ...]] = (
        ("low", _("Low")),
        ("medium", _("Medium")),
        ("high", _("High")),
    )

    STATUS_CHOICES: ClassVar[tuple[tuple[str, Any], ...]] = (
        ("pending", _("Pending")),
        ("in-progress", _("In Progress")),
        ("resolved", _("Resolved")),
    )

    subscriber = models.ForeignKey(
        "subscribers.Subscriber",
        on_delete=models.CASCADE,
        related_name="complaints",
    )
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default="technical")
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default="medium")
    description = models.TextField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending", db_index=True)
    resolution_notes = models.TextField(blank=True)

    created_at = models.DateTimeField()
    resolved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "complaints"
        verbose_name = _("Complaint")
        verbose_name_plural = _("Complaints")
        ordering = ("-created_at",)
        indexes = (models.Index(fields=["status", "priority"], name="idx_complaint_status_priority"),)

    def __str__(self) -> str:
        return f"{self.get_category_display()} complaint ({self.status})"
