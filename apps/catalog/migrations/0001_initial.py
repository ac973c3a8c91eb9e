"""
Create the Pack and Region tables.
"""

from decimal import Decimal

import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Pack",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100, unique=True)),
                (
                    "price",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Price per month",
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                ("channels", models.TextField(blank=True, help_text="Channel line-up, free text")),
                (
                    "is_active",
                    models.BooleanField(
                        default=True,
                        help_text="Retired packs can no longer be subscribed to but still bill existing subscribers",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Pack",
                "verbose_name_plural": "Packs",
                "db_table": "catalog_packs",
                "ordering": ("name",),
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("price__gte", 0)), name="pack_price_non_negative"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Region",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100, unique=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name": "Region",
                "verbose_name_plural": "Regions",
                "db_table": "catalog_regions",
                "ordering": ("name",),
            },
        ),
    ]
