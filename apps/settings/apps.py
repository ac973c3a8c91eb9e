"""
Django app configuration for company settings
"""

from django.apps import AppConfig


class SettingsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.settings"
    label = "company_settings"
    verbose_name = "Company Settings"
