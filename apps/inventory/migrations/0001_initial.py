"""
Create the set-top box inventory table.
"""

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("subscribers", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="SetTopBox",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("serial_number", models.CharField(max_length=100, unique=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("available", "Available"),
                            ("assigned", "Assigned"),
                            ("faulty", "Faulty"),
                            ("decommissioned", "Decommissioned"),
                        ],
                        db_index=True,
                        default="available",
                        max_length=20,
                    ),
                ),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "subscriber",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="set_top_boxes",
                        to="subscribers.subscriber",
                    ),
                ),
            ],
            options={
                "verbose_name": "Set-Top Box",
                "verbose_name_plural": "Set-Top Boxes",
                "db_table": "stb_inventory",
                "ordering": ("serial_number",),
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("status", "assigned"), ("subscriber__isnull", False))
                        | ~models.Q(("status", "assigned")),
                        name="stb_assigned_has_subscriber",
                    ),
                ],
            },
        ),
    ]
