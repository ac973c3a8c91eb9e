"""
Management command to install the default packs and regions.

Only empty tables are seeded, so the command is safe to re-run.
"""

from typing import Any

from django.core.management.base import BaseCommand, CommandParser

from apps.catalog.services import DEFAULT_PACKS, DEFAULT_REGIONS, PackCatalogService, RegionService


class Command(BaseCommand):
    """Seed the catalog with the standard pack line-up."""

    help = "Create the default packs and regions if none exist"

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="List what would be created without writing anything",
        )

    def handle(self, *args: Any, **options: Any) -> None:
        if options["dry_run"]:
            for name, price, _channels in DEFAULT_PACKS:
                self.stdout.write(f"DRY RUN: pack {name} at {price}")
            for name in DEFAULT_REGIONS:
                self.stdout.write(f"DRY RUN: region {name}")
            return

        packs = PackCatalogService.seed_defaults()
        regions = RegionService.seed_defaults()
        if packs or regions:
            self.stdout.write(self.style.SUCCESS(f"✅ Seeded {packs} pack(s) and {regions} region(s)"))
        else:
            self.stdout.write(self.style.WARNING("Catalog already populated, nothing to do"))
