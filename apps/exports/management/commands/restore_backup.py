"""
Management command to restore a JSON backup.

Replaces ALL existing data with the contents of the file.
"""

import json
from pathlib import Path
from typing import Any

from django.core.management.base import BaseCommand, CommandError, CommandParser

from apps.common.types import BusinessError
from apps.exports.services import BackupService


class Command(BaseCommand):
    """Load a snapshot written by backup_data."""

    help = "Replace all data with the contents of a JSON backup"

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument("input", type=str, help="Backup file to restore")
        parser.add_argument(
            "--yes",
            action="store_true",
            help="Confirm that existing data will be replaced",
        )

    def handle(self, *args: Any, **options: Any) -> None:
        if not options["yes"]:
            raise CommandError("Restoring replaces all existing data; re-run with --yes to confirm")

        path = Path(options["input"])
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise CommandError(f"Cannot read backup {path}: {e}") from e

        try:
            summary = BackupService().restore_backup(payload)
        except BusinessError as e:
            raise CommandError(f"Backup rejected: {e}") from e

        for section, count in summary["counts"].items():
            self.stdout.write(f"{section}: {count}")
        if summary["balance_mismatches"]:
            self.stdout.write(
                self.style.WARNING(f"⚠️ {summary['balance_mismatches']} balance(s) disagree with their ledger")
            )
        self.stdout.write(self.style.SUCCESS(f"✅ Restored {path}"))
