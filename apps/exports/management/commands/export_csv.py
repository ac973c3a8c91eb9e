"""
Management command to export subscribers and transactions as CSV files.
"""

from pathlib import Path
from typing import Any

from django.core.management.base import BaseCommand, CommandParser

from apps.exports.services import CsvExportService


class Command(BaseCommand):
    """Write subscribers.csv and transactions.csv into a directory."""

    help = "Export subscribers and transactions to CSV"

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument("directory", type=str, help="Directory to write the CSV files into")

    def handle(self, *args: Any, **options: Any) -> None:
        target = Path(options["directory"])
        target.mkdir(parents=True, exist_ok=True)

        with (target / "subscribers.csv").open("w", newline="", encoding="utf-8") as stream:
            subscribers = CsvExportService.export_subscribers(stream)
        with (target / "transactions.csv").open("w", newline="", encoding="utf-8") as stream:
            transactions = CsvExportService.export_transactions(stream)

        self.stdout.write(
            self.style.SUCCESS(f"✅ Exported {subscribers} subscriber(s) and {transactions} transaction(s) to {target}")
        )
