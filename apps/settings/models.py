"""
Company settings model.

A single row holds the operator's own details, printed on exports and shown
in the dashboard header.
"""

from __future__ import annotations

from typing import Any

from django.db import models
from django.utils.translation import gettext_lazy as _

SINGLETON_PK = 1


class CompanySettings(models.Model):
    """Operator details; always stored with pk=1"""

    name = models.CharField(max_length=200, default="Cable TV Company")
    address = models.TextField(blank=True, default="123 Main Street, City")
    phone = models.CharField(max_length=30, blank=True, default="+91 98765 43210")
    email = models.EmailField(blank=True, default="info@cabletv.com")
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "company_settings"
        verbose_name = _("Company Settings")
        verbose_name_plural = _("Company Settings")

    def __str__(self) -> str:
        return self.name

    def save(self, *args: Any, **kwargs: Any) -> None:  # noqa: DJ012
        self.pk = SINGLETON_PK
        super().save(*args, **kwargs)
