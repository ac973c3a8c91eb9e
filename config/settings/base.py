"""
Django settings for the cable TV billing platform - Base Configuration
Subscriber registry, subscription ledger and scheduled auto-billing.
"""

import os
from pathlib import Path
from typing import Any

# ===============================================================================
# CORE DJANGO SETTINGS
# ===============================================================================

BASE_DIR = Path(__file__).resolve().parent.parent.parent

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "django-insecure-change-me")

# Application definition
DJANGO_APPS: list[str] = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
]

THIRD_PARTY_APPS: list[str] = [
    "rest_framework",
    "django_q",
]

LOCAL_APPS: list[str] = [
    "apps.common",
    "apps.catalog",  # 📺 Packs & regions
    "apps.subscribers",
    "apps.billing",  # 💳 Subscriptions, ledger, auto-billing
    "apps.complaints",
    "apps.inventory",  # 📦 Set-top boxes
    "apps.settings",
    "apps.exports",
]

INSTALLED_APPS: list[str] = DJANGO_APPS + THIRD_PARTY_APPS + LOCAL_APPS

MIDDLEWARE: list[str] = []

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ===============================================================================
# DATABASE CONFIGURATION
# ===============================================================================

DATABASES: dict[str, dict[str, Any]] = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": os.environ.get("DB_NAME", "cablebill"),
        "USER": os.environ.get("DB_USER", "cablebill"),
        "PASSWORD": os.environ.get("DB_PASSWORD", "development_password"),
        "HOST": os.environ.get("DB_HOST", "localhost"),
        "PORT": os.environ.get("DB_PORT", "5432"),
        "CONN_MAX_AGE": 60,
        "OPTIONS": {
            "application_name": "cablebill",
        },
    }
}

# ===============================================================================
# INTERNATIONALIZATION & LOCALIZATION
# ===============================================================================

LANGUAGE_CODE = "en-us"
TIME_ZONE = "Asia/Kolkata"
USE_I18N = True
USE_TZ = True

# ===============================================================================
# CACHE CONFIGURATION
# ===============================================================================

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "cablebill-cache",
    }
}

# ===============================================================================
# DJANGO REST FRAMEWORK (serializers only, used for backups)
# ===============================================================================

REST_FRAMEWORK = {
    "COERCE_DECIMAL_TO_STRING": True,
    "DATETIME_FORMAT": "iso-8601",
}

# ===============================================================================
# BILLING CONFIGURATION 💳
# ===============================================================================

# Record a charge for price x duration when a subscription is added
BILLING_CHARGE_ON_SUBSCRIBE = os.environ.get("BILLING_CHARGE_ON_SUBSCRIBE", "true").lower() == "true"
BILLING_DEFAULT_CYCLE = os.environ.get("BILLING_DEFAULT_CYCLE", "monthly")
BILLING_UPCOMING_WINDOW_DAYS = int(os.environ.get("BILLING_UPCOMING_WINDOW_DAYS", "30"))
BILLING_AUTO_BILLING_LOCK_SECONDS = int(os.environ.get("BILLING_AUTO_BILLING_LOCK_SECONDS", "300"))

# ===============================================================================
# TIME SYNCHRONISATION ⏰
# ===============================================================================

# Billing decisions use network-corrected time when enabled; local time otherwise
TIME_SYNC_ENABLED = os.environ.get("TIME_SYNC_ENABLED", "false").lower() == "true"
TIME_SYNC_URL = os.environ.get("TIME_SYNC_URL", "https://worldtimeapi.org/api/timezone/Asia/Kolkata")
TIME_SYNC_TIMEOUT_SECONDS = int(os.environ.get("TIME_SYNC_TIMEOUT_SECONDS", "5"))
TIME_SYNC_REFRESH_SECONDS = int(os.environ.get("TIME_SYNC_REFRESH_SECONDS", "3600"))

# ===============================================================================
# DJANGO-Q2 CONFIGURATION (Background Tasks) 🔄
# ===============================================================================

Q_CLUSTER_BASE = {
    "name": "cablebill-cluster",
    "timeout": 300,  # 5 minutes
    "retry": 600,  # 10 minutes retry delay
    "save_limit": 1000,
    "catch_up": False,  # Don't run missed scheduled tasks
    "orm": "default",
    "bulk": 10,
    "queue_limit": 100,
}

Q_CLUSTER = {
    **Q_CLUSTER_BASE,
    "workers": 2,
    "recycle": 500,
    "sync": False,
}

# ===============================================================================
# LOGGING (overridden per environment)
# ===============================================================================

LOGGING: dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "{levelname} {asctime} {name} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "INFO",
    },
    "loggers": {
        "apps": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
    },
}
