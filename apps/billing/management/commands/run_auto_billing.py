"""
Management command to run auto-billing now.

Normally the Django-Q2 schedule runs this daily; the command is for catching up
after downtime or billing as of a specific date.
"""

from datetime import datetime, time
from typing import Any

from django.core.management.base import BaseCommand, CommandError, CommandParser
from django.utils import timezone

from apps.billing.autobilling_service import AutoBillingService, raise_for_failures
from apps.common.clock import get_default_clock
from apps.common.types import PartialBatchFailure


class Command(BaseCommand):
    """Charge every auto-billing subscriber who is due."""

    help = "Charge subscribers whose next billing date has arrived"

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument(
            "--date",
            type=str,
            help="Bill as of this date (YYYY-MM-DD) instead of now",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="List who would be charged without writing anything",
        )
        parser.add_argument(
            "--strict",
            action="store_true",
            help="Exit with an error if any subscriber failed to bill",
        )

    def handle(self, *args: Any, **options: Any) -> None:
        service = AutoBillingService(get_default_clock())
        now = self._resolve_now(options.get("date"), service)

        if options["dry_run"]:
            due = service.upcoming_charges(days=0, now=now)
            if not due:
                self.stdout.write(self.style.WARNING("Nobody is due for billing"))
            for charge in due:
                amount = charge["amount"] if charge["amount"] is not None else "unknown pack"
                self.stdout.write(
                    f"DRY RUN: would charge {charge['subscriber_code']} {amount} for {charge['pack_name']}"
                )
            return

        result = service.run_auto_billing(now)
        self.stdout.write(
            self.style.SUCCESS(
                f"✅ Auto-billing complete: {result['charged_count']} charged, "
                f"{result['failed_count']} failed, total {result['total_charged']}"
            )
        )
        for failure in result["failures"]:
            self.stdout.write(self.style.ERROR(f"❌ {failure['subscriber_id']}: {failure['reason']}"))

        if options["strict"]:
            try:
                raise_for_failures(result)
            except PartialBatchFailure as e:
                raise CommandError(f"Auto-billing finished with failures: {e}") from e

    @staticmethod
    def _resolve_now(raw: str | None, service: AutoBillingService) -> datetime:
        if not raw:
            return service.clock.now()
        try:
            day = datetime.strptime(raw, "%Y-%m-%d").date()
        except ValueError as e:
            raise CommandError(f"Invalid --date {raw!r}, expected YYYY-MM-DD") from e
        return timezone.make_aware(datetime.combine(day, time(hour=12)))
