# ===============================================================================
# BACKUP SNAPSHOT SERIALIZERS 💾
# ===============================================================================
"""
Serializers for the JSON backup format.

Each serializer writes one record of a snapshot and validates it again on
restore. Foreign keys are carried as raw ids and unique checks against the
live database are disabled, because a restore replaces the whole dataset.
"""

from typing import Any, ClassVar

from rest_framework import serializers

from apps.billing.models import BillingHistoryEntry, SubscriptionEntry, Transaction
from apps.catalog.models import Pack, Region
from apps.complaints.models import Complaint
from apps.inventory.models import SetTopBox
from apps.settings.models import CompanySettings
from apps.subscribers.models import Subscriber

# ===============================================================================
# CATALOG 📺
# ===============================================================================


class PackSnapshotSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField()
    created_at = serializers.DateTimeField(required=False)
    updated_at = serializers.DateTimeField(required=False)

    class Meta:
        model = Pack
        fields: ClassVar = ["id", "name", "price", "channels", "is_active", "created_at", "updated_at"]
        extra_kwargs: ClassVar = {"name": {"validators": []}}
        validators: ClassVar = []


class RegionSnapshotSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField()
    created_at = serializers.DateTimeField(required=False)

    class Meta:
        model = Region
        fields: ClassVar = ["id", "name", "created_at"]
        extra_kwargs: ClassVar = {"name": {"validators": []}}
        validators: ClassVar = []


# ===============================================================================
# SUBSCRIBERS 👤
# ===============================================================================


class SubscriberSnapshotSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField()
    created_at = serializers.DateTimeField(required=False)
    updated_at = serializers.DateTimeField(required=False)

    class Meta:
        model = Subscriber
        fields: ClassVar = [
            "id",
            "code",
            "name",
            "mobile",
            "stb_number",
            "region",
            "latitude",
            "longitude",
            "balance",
            "current_pack",
            "billing_cycle",
            "next_billing_date",
            "auto_charge_enabled",
            "last_billing_date",
            "join_date",
            "created_at",
            "updated_at",
        ]
        extra_kwargs: ClassVar = {"code": {"validators": []}}
        validators: ClassVar = []

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        if attrs.get("auto_charge_enabled") and not attrs.get("next_billing_date"):
            raise serializers.ValidationError({"next_billing_date": "required when auto-charge is enabled"})
        return attrs


# ===============================================================================
# BILLING 💳
# ===============================================================================


class SubscriptionEntrySnapshotSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField()
    subscriber = serializers.UUIDField(source="subscriber_id")

    class Meta:
        model = SubscriptionEntry
        fields: ClassVar = [
            "id",
            "subscriber",
            "pack_name",
            "pack_price",
            "start_date",
            "end_date",
            "duration",
            "status",
            "subscribed_at",
            "ended_at",
        ]
        validators: ClassVar = []

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        if attrs["end_date"] <= attrs["start_date"]:
            raise serializers.ValidationError({"end_date": "must be after start_date"})
        if attrs["status"] != "active" and attrs.get("ended_at") is None:
            raise serializers.ValidationError({"ended_at": "required once an entry is no longer active"})
        return attrs


class TransactionSnapshotSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField()
    subscriber = serializers.UUIDField(source="subscriber_id")
    created_at = serializers.DateTimeField(required=False)
    updated_at = serializers.DateTimeField(required=False)

    class Meta:
        model = Transaction
        fields: ClassVar = ["id", "subscriber", "type", "amount", "description", "date", "created_at", "updated_at"]
        validators: ClassVar = []


class BillingHistorySnapshotSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField()
    subscriber = serializers.UUIDField(source="subscriber_id")
    transaction = serializers.IntegerField(source="transaction_id", allow_null=True, required=False)

    class Meta:
        model = BillingHistoryEntry
        fields: ClassVar = [
            "id",
            "subscriber",
            "billing_cycle",
            "pack_name",
            "amount",
            "due_date",
            "generated_at",
            "transaction",
            "status",
            "failure_reason",
        ]
        validators: ClassVar = []


# ===============================================================================
# OPERATIONS 🛠️
# ===============================================================================


class ComplaintSnapshotSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField()
    subscriber = serializers.UUIDField(source="subscriber_id")

    class Meta:
        model = Complaint
        fields: ClassVar = [
            "id",
            "subscriber",
            "category",
            "priority",
            "description",
            "status",
            "resolution_notes",
            "created_at",
            "resolved_at",
        ]
        validators: ClassVar = []


class SetTopBoxSnapshotSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField()
    subscriber = serializers.UUIDField(source="subscriber_id", allow_null=True, required=False)
    created_at = serializers.DateTimeField(required=False)
    updated_at = serializers.DateTimeField(required=False)

    class Meta:
        model = SetTopBox
        fields: ClassVar = ["id", "serial_number", "status", "subscriber", "notes", "created_at", "updated_at"]
        extra_kwargs: ClassVar = {"serial_number": {"validators": []}}
        validators: ClassVar = []

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        if attrs["status"] == "assigned" and attrs.get("subscriber_id") is None:
            raise serializers.ValidationError({"subscriber": "assigned boxes need a subscriber"})
        return attrs


class CompanySettingsSnapshotSerializer(serializers.ModelSerializer):
    class Meta:
        model = CompanySettings
        fields: ClassVar = ["name", "address", "phone", "email"]


# ===============================================================================
# ENVELOPE
# ===============================================================================


class BackupEnvelopeSerializer(serializers.Serializer):
    """Top level of a backup file; record lists are validated separately"""

    version = serializers.CharField()
    timestamp = serializers.DateTimeField()
    data = serializers.DictField()
