"""
Management command to compare stored balances with the transaction ledger.
"""

from typing import Any

from django.core.management.base import BaseCommand, CommandError, CommandParser

from apps.billing.ledger_service import LedgerService


class Command(BaseCommand):
    """Report subscribers whose balance disagrees with their transactions."""

    help = "Verify every subscriber balance against the sum of its transactions"

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument(
            "--fail-on-mismatch",
            action="store_true",
            help="Exit with an error when a mismatch is found",
        )

    def handle(self, *args: Any, **options: Any) -> None:
        mismatches = LedgerService.find_balance_discrepancies()
        if not mismatches:
            self.stdout.write(self.style.SUCCESS("✅ All balances match the ledger"))
            return

        for check in mismatches:
            self.stdout.write(
                self.style.ERROR(
                    f"❌ {check['subscriber_code']}: stored {check['stored']}, "
                    f"ledger {check['derived']} (off by {check['difference']})"
                )
            )
        if options["fail_on_mismatch"]:
            raise CommandError(f"{len(mismatches)} balance mismatch(es) found")
