"""
Create the company settings singleton table.
"""

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="CompanySettings",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(default="Cable TV Company", max_length=200)),
                ("address", models.TextField(blank=True, default="123 Main Street, City")),
                ("phone", models.CharField(blank=True, default="+91 98765 43210", max_length=30)),
                ("email", models.EmailField(blank=True, default="info@cabletv.com", max_length=254)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Company Settings",
                "verbose_name_plural": "Company Settings",
                "db_table": "company_settings",
            },
        ),
    ]
