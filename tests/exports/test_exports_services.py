# ===============================================================================
# CSV EXPORT AND JSON BACKUP TESTS
# ===============================================================================

import copy
import csv
import json
import tempfile
from decimal import Decimal
from io import StringIO
from pathlib import Path

from django.core.management import CommandError, call_command
from django.test import TestCase

from apps.billing.ledger_service import LedgerService
from apps.billing.models import SubscriptionEntry, Transaction
from apps.billing.subscription_service import SubscriptionLedgerService
from apps.catalog.models import Pack
from apps.common.types import ValidationError
from apps.complaints.models import Complaint
from apps.complaints.services import ComplaintService
from apps.exports.services import (
    BACKUP_VERSION,
    SUBSCRIBER_CSV_HEADER,
    TRANSACTION_CSV_HEADER,
    BackupService,
    CsvExportService,
)
from apps.inventory.models import SetTopBox
from apps.inventory.services import StbInventoryService
from apps.settings.services import CompanySettingsService
from apps.subscribers.models import Subscriber
from apps.subscribers.services import SubscriberService
from tests.factories.cable_factories import create_pack, fixed_clock


class ExportDataMixin:
    """A small but complete dataset"""

    def build_dataset(self):
        self.clock = fixed_clock(2023, 1, 1)
        create_pack("HD Premium", "500.00")
        self.subscriber = SubscriberService(self.clock).register_subscriber(
            {"name": "Asha Rao", "mobile": "9000000001", "region": "North Zone"}
        )
        SubscriptionLedgerService(self.clock).add_subscription(self.subscriber.pk, "HD Premium", 3)
        LedgerService(self.clock).record_transaction(self.subscriber.pk, "payment", 400, "Cash")
        ComplaintService(self.clock).open_complaint(self.subscriber.pk, "Picture freezes")
        stb = StbInventoryService.add_stb("STB-42")
        StbInventoryService.assign(stb.pk, self.subscriber.pk)
        CompanySettingsService.update(name="Sunrise Cable")
        self.subscriber.refresh_from_db()


class CsvExportServiceTestCase(ExportDataMixin, TestCase):
    def setUp(self):
        self.build_dataset()

    def test_subscriber_csv(self):
        stream = StringIO()
        count = CsvExportService.export_subscribers(stream)
        rows = list(csv.reader(StringIO(stream.getvalue())))

        self.assertEqual(count, 1)
        self.assertEqual(rows[0], SUBSCRIBER_CSV_HEADER)
        row = dict(zip(rows[0], rows[1]))
        self.assertEqual(row["ID"], self.subscriber.code)
        self.assertEqual(row["Pack"], "HD Premium")
        self.assertEqual(row["STB Number"], "STB-42")
        self.assertEqual(row["Balance"], "1100.00")
        self.assertEqual(row["Latitude"], "")

    def test_transaction_csv(self):
        stream = StringIO()
        self.assertEqual(CsvExportService.export_transactions(stream), 2)
        rows = list(csv.reader(StringIO(stream.getvalue())))
        self.assertEqual(rows[0], TRANSACTION_CSV_HEADER)
        self.assertEqual([row[2] for row in rows[1:]], ["charge", "payment"])
        self.assertEqual(rows[1][1], self.subscriber.code)

    def test_export_command(self):
        with tempfile.TemporaryDirectory() as tmp:
            out = StringIO()
            call_command("export_csv", tmp, stdout=out)
            self.assertTrue((Path(tmp) / "subscribers.csv").exists())
            self.assertTrue((Path(tmp) / "transactions.csv").exists())
        self.assertIn("1 subscriber(s) and 2 transaction(s)", out.getvalue())


class BackupServiceTestCase(ExportDataMixin, TestCase):
    """Full snapshot and all-or-nothing restore"""

    def setUp(self):
        self.build_dataset()
        self.service = BackupService(self.clock)
        self.backup = json.loads(json.dumps(self.service.create_backup()))

    def test_backup_envelope(self):
        self.assertEqual(self.backup["version"], BACKUP_VERSION)
        data = self.backup["data"]
        self.assertEqual(len(data["subscribers"]), 1)
        self.assertEqual(len(data["transactions"]), 2)
        self.assertEqual(len(data["subscription_entries"]), 1)
        self.assertEqual(data["company_settings"]["name"], "Sunrise Cable")
        self.assertEqual(data["subscriber_sequence"], 1)

    def test_restore_replaces_current_data(self):
        SubscriberService.delete_subscriber(self.subscriber.pk)
        Pack.objects.all().delete()
        CompanySettingsService.update(name="Someone Else")

        summary = self.service.restore_backup(self.backup)

        self.assertEqual(summary["counts"]["subscribers"], 1)
        self.assertEqual(summary["balance_mismatches"], 0)
        restored = Subscriber.objects.get(pk=self.subscriber.pk)
        self.assertEqual(restored.code, self.subscriber.code)
        self.assertEqual(restored.balance, Decimal("1100.00"))
        self.assertEqual(restored.created_at, self.subscriber.created_at)
        self.assertEqual(Transaction.objects.filter(subscriber=restored).count(), 2)
        self.assertEqual(SubscriptionEntry.objects.get(subscriber=restored).status, "active")
        self.assertEqual(Complaint.objects.count(), 1)
        self.assertEqual(SetTopBox.objects.get().subscriber, restored)
        self.assertEqual(CompanySettingsService.get().name, "Sunrise Cable")

    def test_new_codes_continue_after_restore(self):
        self.service.restore_backup(self.backup)
        newcomer = SubscriberService(self.clock).register_subscriber({"name": "New Person"})
        self.assertEqual(newcomer.code, "SUB-000002")

    def test_unsupported_version_is_rejected(self):
        payload = copy.deepcopy(self.backup)
        payload["version"] = "1.0"
        with self.assertRaises(ValidationError):
            self.service.restore_backup(payload)

    def test_dangling_reference_leaves_data_untouched(self):
        payload = copy.deepcopy(self.backup)
        payload["data"]["subscribers"] = []
        with self.assertRaises(ValidationError):
            self.service.restore_backup(payload)
        self.assertTrue(Subscriber.objects.filter(pk=self.subscriber.pk).exists())

    def test_invalid_record_is_rejected(self):
        payload = copy.deepcopy(self.backup)
        payload["data"]["transactions"][0]["type"] = "gift"
        with self.assertRaises(ValidationError) as ctx:
            self.service.restore_backup(payload)
        self.assertEqual(ctx.exception.field, "transactions")

    def test_not_a_backup(self):
        for payload in ([], {"version": "2.0"}, "garbage"):
            with self.assertRaises(ValidationError):
                self.service.restore_backup(payload)

    def test_backup_and_restore_commands(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "backup.json"
            call_command("backup_data", str(path), stdout=StringIO())
            self.assertEqual(json.loads(path.read_text(encoding="utf-8"))["version"], BACKUP_VERSION)

            with self.assertRaises(CommandError):
                call_command("restore_backup", str(path), stdout=StringIO())

            out = StringIO()
            call_command("restore_backup", str(path), "--yes", stdout=out)
            self.assertIn("subscribers: 1", out.getvalue())

            path.write_text("{not json", encoding="utf-8")
            with self.assertRaises(CommandError):
                call_command("restore_backup", str(path), "--yes", stdout=StringIO())
