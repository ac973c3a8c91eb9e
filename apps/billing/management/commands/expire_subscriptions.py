"""
Management command to expire lapsed subscriptions.
"""

from typing import Any

from django.core.management.base import BaseCommand

from apps.billing.subscription_service import SubscriptionLedgerService
from apps.common.clock import get_default_clock


class Command(BaseCommand):
    """Mark subscriptions past their end date as expired."""

    help = "Expire every active subscription whose end date has passed"

    def handle(self, *args: Any, **options: Any) -> None:
        expired = SubscriptionLedgerService(get_default_clock()).expire_due_subscriptions()
        if expired:
            self.stdout.write(self.style.SUCCESS(f"✅ Expired {len(expired)} subscription(s)"))
        else:
            self.stdout.write("No subscriptions due for expiry")
