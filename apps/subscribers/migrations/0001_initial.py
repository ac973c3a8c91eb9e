"""
Create the Subscriber and SubscriberSequence tables.
"""

import uuid
from decimal import Decimal

import django.core.validators
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="SubscriberSequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("scope", models.CharField(default="subscriber", max_length=50, unique=True)),
                ("last_value", models.BigIntegerField(default=0)),
            ],
            options={
                "verbose_name": "Subscriber Sequence",
                "verbose_name_plural": "Subscriber Sequences",
                "db_table": "subscriber_sequence",
            },
        ),
        migrations.CreateModel(
            name="Subscriber",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "code",
                    models.CharField(
                        help_text="Human readable identifier, e.g. SUB-000001", max_length=20, unique=True
                    ),
                ),
                ("name", models.CharField(max_length=200)),
                ("mobile", models.CharField(blank=True, max_length=20)),
                (
                    "stb_number",
                    models.CharField(blank=True, help_text="Serial of the assigned set-top box", max_length=100),
                ),
                ("region", models.CharField(blank=True, db_index=True, max_length=100)),
                (
                    "latitude",
                    models.DecimalField(
                        blank=True,
                        decimal_places=6,
                        max_digits=9,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(-90),
                            django.core.validators.MaxValueValidator(90),
                        ],
                    ),
                ),
                (
                    "longitude",
                    models.DecimalField(
                        blank=True,
                        decimal_places=6,
                        max_digits=9,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(-180),
                            django.core.validators.MaxValueValidator(180),
                        ],
                    ),
                ),
                (
                    "balance",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Amount owed; negative means credit",
                        max_digits=12,
                    ),
                ),
                ("current_pack", models.CharField(blank=True, db_index=True, max_length=100)),
                (
                    "billing_cycle",
                    models.CharField(
                        choices=[
                            ("monthly", "Monthly"),
                            ("quarterly", "Quarterly"),
                            ("semi-annually", "Semi-Annually"),
                            ("yearly", "Yearly"),
                        ],
                        default="monthly",
                        max_length=20,
                    ),
                ),
                ("next_billing_date", models.DateField(blank=True, db_index=True, null=True)),
                ("auto_charge_enabled", models.BooleanField(default=False)),
                ("last_billing_date", models.DateTimeField(blank=True, null=True)),
                ("join_date", models.DateField(default=django.utils.timezone.localdate)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Subscriber",
                "verbose_name_plural": "Subscribers",
                "db_table": "subscribers",
                "ordering": ("-created_at",),
                "indexes": [
                    models.Index(fields=["auto_charge_enabled", "next_billing_date"], name="idx_subscriber_autobill_due"),
                    models.Index(fields=["mobile"], name="idx_subscriber_mobile"),
                ],
            },
        ),
    ]
