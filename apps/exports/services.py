"""
CSV exports and JSON backup/restore.

Backups are a full snapshot of every table. Restoring validates the whole
snapshot first and then replaces all data in one database transaction, so a
bad file leaves the existing data untouched.
"""

from __future__ import annotations

import csv
import logging
from collections.abc import Iterable
from typing import IO, Any, ClassVar, Final, TypedDict

from django.core.management.color import no_style
from django.db import IntegrityError, connection, models, transaction
from rest_framework import serializers

from apps.billing.ledger_service import LedgerService
from apps.billing.models import BillingHistoryEntry, SubscriptionEntry, Transaction
from apps.catalog.models import Pack, Region
from apps.common.clock import Clock, get_default_clock
from apps.common.constants import SUBSCRIBER_CODE_PREFIX
from apps.common.types import ValidationError
from apps.common.validators import log_security_event
from apps.complaints.models import Complaint
from apps.inventory.models import SetTopBox
from apps.settings.models import CompanySettings
from apps.settings.services import CompanySettingsService
from apps.subscribers.models import Subscriber, SubscriberSequence

from .serializers import (
    BackupEnvelopeSerializer,
    BillingHistorySnapshotSerializer,
    CompanySettingsSnapshotSerializer,
    ComplaintSnapshotSerializer,
    PackSnapshotSerializer,
    RegionSnapshotSerializer,
    SetTopBoxSnapshotSerializer,
    SubscriberSnapshotSerializer,
    SubscriptionEntrySnapshotSerializer,
    TransactionSnapshotSerializer,
)

logger = logging.getLogger(__name__)

BACKUP_VERSION: Final[str] = "2.0"
SUPPORTED_BACKUP_VERSIONS: Final[frozenset[str]] = frozenset({"2.0"})

SUBSCRIBER_CSV_HEADER: Final[list[str]] = [
    "ID",
    "Name",
    "Mobile",
    "STB Number",
    "Latitude",
    "Longitude",
    "Pack",
    "Region",
    "Balance",
    "Created At",
]
TRANSACTION_CSV_HEADER: Final[list[str]] = ["ID", "Subscriber ID", "Type", "Amount", "Description", "Date"]


class RestoreSummary(TypedDict):
    counts: dict[str, int]
    balance_mismatches: int


# ===============================================================================
# CSV EXPORT 📄
# ===============================================================================


class CsvExportService:
    """Flat CSV files for spreadsheets"""

    @staticmethod
    def export_subscribers(stream: IO[str]) -> int:
        writer = csv.writer(stream)
        writer.writerow(SUBSCRIBER_CSV_HEADER)
        count = 0
        for subscriber in Subscriber.objects.order_by("code").iterator():
            writer.writerow(
                [
                    subscriber.code,
                    subscriber.name,
                    subscriber.mobile,
                    subscriber.stb_number,
                    "" if subscriber.latitude is None else subscriber.latitude,
                    "" if subscriber.longitude is None else subscriber.longitude,
                    subscriber.current_pack,
                    subscriber.region,
                    subscriber.balance,
                    subscriber.created_at.isoformat(),
                ]
            )
            count += 1
        return count

    @staticmethod
    def export_transactions(stream: IO[str]) -> int:
        writer = csv.writer(stream)
        writer.writerow(TRANSACTION_CSV_HEADER)
        count = 0
        rows = Transaction.objects.select_related("subscriber").order_by("date", "id")
        for txn in rows.iterator():
            writer.writerow(
                [txn.pk, txn.subscriber.code, txn.type, txn.amount, txn.description, txn.date.isoformat()]
            )
            count += 1
        return count


# ===============================================================================
# JSON BACKUP 💾
# ===============================================================================


class BackupService:
    """Whole-database snapshots"""

    # Section name, model, serializer; parents before children
    SECTIONS: ClassVar[tuple[tuple[str, type[models.Model], type[serializers.ModelSerializer]], ...]] = (
        ("packs", Pack, PackSnapshotSerializer),
        ("regions", Region, RegionSnapshotSerializer),
        ("subscribers", Subscriber, SubscriberSnapshotSerializer),
        ("subscription_entries", SubscriptionEntry, SubscriptionEntrySnapshotSerializer),
        ("transactions", Transaction, TransactionSnapshotSerializer),
        ("billing_history", BillingHistoryEntry, BillingHistorySnapshotSerializer),
        ("complaints", Complaint, ComplaintSnapshotSerializer),
        ("stbs", SetTopBox, SetTopBoxSnapshotSerializer),
    )

    def __init__(self, clock: Clock | None = None) -> None:
        self.clock = clock or get_default_clock()

    def create_backup(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for section, model, serializer_class in self.SECTIONS:
            data[section] = serializer_class(model.objects.order_by("pk"), many=True).data
        data["company_settings"] = CompanySettingsSnapshotSerializer(CompanySettingsService.get()).data
        data["subscriber_sequence"] = (
            SubscriberSequence.objects.filter(scope="subscriber").values_list("last_value", flat=True).first() or 0
        )

        backup = {"version": BACKUP_VERSION, "timestamp": self.clock.now().isoformat(), "data": data}
        logger.info(
            f"💾 [Backup] Created backup with {len(data['subscribers'])} subscriber(s) "
            f"and {len(data['transactions'])} transaction(s)"
        )
        return backup

    def restore_backup(self, payload: Any) -> RestoreSummary:
        """Replace every table with the snapshot in ``payload``"""
        envelope = BackupEnvelopeSerializer(data=payload if isinstance(payload, dict) else {})
        if not envelope.is_valid():
            raise ValidationError("backup", f"not a backup file: {dict(envelope.errors)}")
        version = envelope.validated_data["version"]
        if version not in SUPPORTED_BACKUP_VERSIONS:
            raise ValidationError("version", f"unsupported backup version {version!r}")
        data = envelope.validated_data["data"]

        sections = {
            name: self._validate_section(name, serializer, data.get(name, []))
            for name, _model, serializer in self.SECTIONS
        }
        self._check_references(sections)

        company = CompanySettingsSnapshotSerializer(data=data.get("company_settings") or {})
        if not company.is_valid():
            raise ValidationError("company_settings", str(dict(company.errors)))
        sequence_value = self._sequence_value(data.get("subscriber_sequence", 0), sections["subscribers"])

        try:
            with transaction.atomic():
                self._wipe()
                for name, model, _serializer in self.SECTIONS:
                    self._insert(model, sections[name])
                CompanySettings.objects.update_or_create(pk=1, defaults=company.validated_data)
                SubscriberSequence.objects.update_or_create(scope="subscriber", defaults={"last_value": sequence_value})
                self._reset_sequences()
        except IntegrityError as e:
            raise ValidationError("backup", f"snapshot violates a data constraint: {e}") from e

        CompanySettingsService.clear_cache()
        counts = {name: len(sections[name]) for name, _m, _s in self.SECTIONS}
        mismatches = LedgerService.find_balance_discrepancies()
        log_security_event(
            event_type="backup_restored",
            details={"version": version, "counts": counts, "balance_mismatches": len(mismatches)},
        )
        return RestoreSummary(counts=counts, balance_mismatches=len(mismatches))

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _validate_section(
        name: str, serializer_class: type[serializers.ModelSerializer], records: Any
    ) -> list[dict[str, Any]]:
        if not isinstance(records, list):
            raise ValidationError(name, "must be a list of records")
        serializer = serializer_class(data=records, many=True)
        if not serializer.is_valid():
            bad = next((i, errors) for i, errors in enumerate(serializer.errors) if errors)
            raise ValidationError(name, f"record {bad[0]} is invalid: {bad[1]}")
        return list(serializer.validated_data)

    @staticmethod
    def _check_references(sections: dict[str, list[dict[str, Any]]]) -> None:
        subscriber_ids = {row["id"] for row in sections["subscribers"]}
        for name in ("subscription_entries", "transactions", "billing_history", "complaints", "stbs"):
            for row in sections[name]:
                ref = row.get("subscriber_id")
                if ref is not None and ref not in subscriber_ids:
                    raise ValidationError(name, f"record {row['id']} points at unknown subscriber {ref}")

        transaction_ids = {row["id"] for row in sections["transactions"]}
        for row in sections["billing_history"]:
            ref = row.get("transaction_id")
            if ref is not None and ref not in transaction_ids:
                raise ValidationError("billing_history", f"record {row['id']} points at unknown transaction {ref}")

        active = [row["subscriber_id"] for row in sections["subscription_entries"] if row["status"] == "active"]
        if len(active) != len(set(active)):
            raise ValidationError("subscription_entries", "a subscriber has more than one active subscription")

    @staticmethod
    def _sequence_value(raw: Any, subscribers: Iterable[dict[str, Any]]) -> int:
        try:
            value = max(0, int(raw))
        except (TypeError, ValueError):
            raise ValidationError("subscriber_sequence", f"not a number: {raw!r}") from None
        prefix = f"{SUBSCRIBER_CODE_PREFIX}-"
        for row in subscribers:
            suffix = row["code"].removeprefix(prefix)
            if suffix.isdigit():
                value = max(value, int(suffix))
        return value

    def _wipe(self) -> None:
        # Children first; subscribers cascade the rest
        for _name, model, _serializer in reversed(self.SECTIONS):
            model.objects.all().delete()

    @staticmethod
    def _insert(model: type[models.Model], rows: list[dict[str, Any]]) -> None:
        if not rows:
            return
        model.objects.bulk_create([model(**row) for row in rows])

        # bulk_create stamps auto_now/auto_now_add fields; put the snapshot's values back
        stamped = [
            field.name
            for field in model._meta.concrete_fields
            if getattr(field, "auto_now", False) or getattr(field, "auto_now_add", False)
        ]
        for row in rows:
            restored = {name: row[name] for name in stamped if row.get(name) is not None}
            if restored:
                model.objects.filter(pk=row["id"]).update(**restored)

    def _reset_sequences(self) -> None:
        """Move auto-increment counters past the restored ids"""
        statements = connection.ops.sequence_reset_sql(no_style(), [model for _n, model, _s in self.SECTIONS])
        if statements:
            with connection.cursor() as cursor:
                for sql in statements:
                    cursor.execute(sql)
