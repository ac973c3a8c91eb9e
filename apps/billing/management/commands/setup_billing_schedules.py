"""
Management command to register the billing schedules with Django-Q2.
"""

from typing import Any

from django.core.management.base import BaseCommand

from apps.billing.tasks import setup_billing_scheduled_tasks


class Command(BaseCommand):
    """Create the daily expiry and auto-billing schedules if missing."""

    help = "Register the daily subscription expiry and auto-billing jobs"

    def handle(self, *args: Any, **options: Any) -> None:
        created = setup_billing_scheduled_tasks()
        for task_name, state in created.items():
            style = self.style.SUCCESS if state == "created" else self.style.WARNING
            self.stdout.write(style(f"{task_name}: {state}"))
