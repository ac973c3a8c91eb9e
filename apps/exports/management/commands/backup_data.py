"""
Management command to write a full JSON backup.
"""

import json
from pathlib import Path
from typing import Any

from django.core.management.base import BaseCommand, CommandParser

from apps.exports.services import BackupService


class Command(BaseCommand):
    """Dump every table into one JSON file."""

    help = "Write a JSON snapshot of all subscriber, billing and catalog data"

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument("output", type=str, help="Path of the backup file to create")

    def handle(self, *args: Any, **options: Any) -> None:
        backup = BackupService().create_backup()
        output = Path(options["output"])
        output.write_text(json.dumps(backup, indent=2, ensure_ascii=False), encoding="utf-8")
        self.stdout.write(self.style.SUCCESS(f"💾 Backup written to {output}"))
