"""
Create the subscription ledger, transaction log and auto-billing history tables.

One active subscription per subscriber is enforced with a partial unique
constraint on the status column.
"""

from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("subscribers", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Transaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "type",
                    models.CharField(
                        choices=[("payment", "Payment"), ("charge", "Charge"), ("refund", "Refund")], max_length=20
                    ),
                ),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.01"))],
                    ),
                ),
                ("description", models.CharField(blank=True, max_length=500)),
                ("date", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "subscriber",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="transactions",
                        to="subscribers.subscriber",
                    ),
                ),
            ],
            options={
                "verbose_name": "Transaction",
                "verbose_name_plural": "Transactions",
                "db_table": "transactions",
                "ordering": ("-date", "-id"),
                "indexes": [
                    models.Index(fields=["subscriber", "-date"], name="idx_txn_subscriber_date"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount__gt", 0)), name="transaction_amount_positive"),
                    models.CheckConstraint(
                        condition=models.Q(("type__in", ["charge", "payment", "refund"])),
                        name="transaction_type_known",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="SubscriptionEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("pack_name", models.CharField(max_length=100)),
                (
                    "pack_price",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Monthly price when the subscription was sold",
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                ("start_date", models.DateTimeField()),
                ("end_date", models.DateTimeField(db_index=True)),
                (
                    "duration",
                    models.PositiveIntegerField(
                        help_text="Length in calendar months",
                        validators=[django.core.validators.MinValueValidator(1)],
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("expired", "Expired"), ("cancelled", "Cancelled")],
                        db_index=True,
                        default="active",
                        max_length=20,
                    ),
                ),
                ("subscribed_at", models.DateTimeField()),
                (
                    "ended_at",
                    models.DateTimeField(blank=True, help_text="When the entry left the active state", null=True),
                ),
                (
                    "subscriber",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="subscription_entries",
                        to="subscribers.subscriber",
                    ),
                ),
            ],
            options={
                "verbose_name": "Subscription Entry",
                "verbose_name_plural": "Subscription Entries",
                "db_table": "subscription_entries",
                "ordering": ("-subscribed_at",),
                "indexes": [
                    models.Index(fields=["subscriber", "status"], name="idx_entry_subscriber_status"),
                    models.Index(
                        condition=models.Q(("status", "active")),
                        fields=["end_date"],
                        name="idx_active_entry_end_date",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status", "active")),
                        fields=("subscriber",),
                        name="one_active_subscription_per_subscriber",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("duration__gte", 1)), name="subscription_entry_duration_positive"
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("pack_price__gte", 0)), name="subscription_entry_price_non_negative"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="BillingHistoryEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("billing_cycle", models.CharField(max_length=20)),
                ("pack_name", models.CharField(blank=True, max_length=100)),
                ("amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("due_date", models.DateField(blank=True, null=True)),
                ("generated_at", models.DateTimeField()),
                (
                    "status",
                    models.CharField(
                        choices=[("scheduled", "Scheduled"), ("charged", "Charged"), ("failed", "Failed")],
                        db_index=True,
                        max_length=20,
                    ),
                ),
                ("failure_reason", models.TextField(blank=True)),
                (
                    "subscriber",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="billing_history",
                        to="subscribers.subscriber",
                    ),
                ),
                (
                    "transaction",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="billing_history",
                        to="billing.transaction",
                    ),
                ),
            ],
            options={
                "verbose_name": "Billing History Entry",
                "verbose_name_plural": "Billing History",
                "db_table": "billing_history",
                "ordering": ("-generated_at", "-id"),
                "indexes": [
                    models.Index(fields=["subscriber", "-generated_at"], name="idx_billing_subscriber_gen"),
                ],
            },
        ),
    ]
