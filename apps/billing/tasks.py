"""
Billing background tasks.

Django-Q2 tasks for the daily subscription expiry sweep and auto-billing run,
plus the helpers that register them as scheduled jobs.
"""

from __future__ import annotations

import logging
from typing import Any

from django.core.cache import cache
from django_q.models import Schedule
from django_q.tasks import async_task, schedule

from apps.common.clock import get_default_clock

from .autobilling_service import AutoBillingService
from .config import get_auto_billing_lock_seconds
from .subscription_service import SubscriptionLedgerService

logger = logging.getLogger(__name__)

# Task configuration
TASK_TIME_LIMIT = 600  # 10 minutes

AUTO_BILLING_LOCK_KEY = "billing_auto_billing_lock"
EXPIRY_LOCK_KEY = "billing_expiry_sweep_lock"

SCHEDULE_EXPIRE_SUBSCRIPTIONS = "billing-expire-subscriptions"
SCHEDULE_AUTO_BILLING = "billing-auto-billing"
SCHEDULE_CLUSTER = "cablebill-cluster"


def expire_subscriptions_task() -> dict[str, Any]:
    """Expire every subscription whose end date has passed."""
    logger.info("⏰ [BillingTasks] Starting subscription expiry sweep")

    # cache.add is atomic, so only one worker acquires the lock
    if not cache.add(EXPIRY_LOCK_KEY, True, get_auto_billing_lock_seconds()):
        logger.info("⏭️ [BillingTasks] Expiry sweep already running, skipping")
        return {"success": True, "message": "Already running"}

    try:
        expired = SubscriptionLedgerService(get_default_clock()).expire_due_subscriptions()
        return {"success": True, "expired_count": len(expired), "subscriber_ids": expired}
    except Exception as e:
        logger.exception(f"💥 [BillingTasks] Expiry sweep failed: {e}")
        return {"success": False, "error": str(e)}
    finally:
        cache.delete(EXPIRY_LOCK_KEY)


def run_auto_billing_task() -> dict[str, Any]:
    """Charge every auto-billing subscriber who is due today."""
    logger.info("💳 [BillingTasks] Starting auto-billing run")

    if not cache.add(AUTO_BILLING_LOCK_KEY, True, get_auto_billing_lock_seconds()):
        logger.info("⏭️ [BillingTasks] Auto-billing already running, skipping")
        return {"success": True, "message": "Already running"}

    try:
        result = AutoBillingService(get_default_clock()).run_auto_billing()
        return {
            "success": True,
            "charged_count": result["charged_count"],
            "failed_count": result["failed_count"],
            "total_charged": str(result["total_charged"]),
            "failures": result["failures"],
        }
    except Exception as e:
        logger.exception(f"💥 [BillingTasks] Auto-billing run failed: {e}")
        return {"success": False, "error": str(e)}
    finally:
        cache.delete(AUTO_BILLING_LOCK_KEY)


# ===============================================================================
# ASYNC WRAPPERS
# ===============================================================================


def expire_subscriptions_async() -> str:
    """Queue the expiry sweep."""
    return async_task("apps.billing.tasks.expire_subscriptions_task", timeout=TASK_TIME_LIMIT)


def run_auto_billing_async() -> str:
    """Queue an auto-billing run."""
    return async_task("apps.billing.tasks.run_auto_billing_task", timeout=TASK_TIME_LIMIT)


# ===============================================================================
# SCHEDULED TASKS SETUP
# ===============================================================================


def setup_billing_scheduled_tasks() -> dict[str, str]:
    """Register the daily expiry sweep and auto-billing run."""
    tasks_created = {}

    existing_tasks = set(
        Schedule.objects.filter(name__in=[SCHEDULE_EXPIRE_SUBSCRIPTIONS, SCHEDULE_AUTO_BILLING]).values_list(
            "name", flat=True
        )
    )

    # Expire first so auto-billing sees up-to-date subscriptions
    if SCHEDULE_EXPIRE_SUBSCRIPTIONS not in existing_tasks:
        schedule(
            "apps.billing.tasks.expire_subscriptions_task",
            schedule_type=Schedule.CRON,
            cron="5 0 * * *",  # 00:05 daily
            name=SCHEDULE_EXPIRE_SUBSCRIPTIONS,
            cluster=SCHEDULE_CLUSTER,
        )
        tasks_created["expire_subscriptions"] = "created"
    else:
        tasks_created["expire_subscriptions"] = "already_exists"

    if SCHEDULE_AUTO_BILLING not in existing_tasks:
        schedule(
            "apps.billing.tasks.run_auto_billing_task",
            schedule_type=Schedule.CRON,
            cron="0 1 * * *",  # 1 AM daily
            name=SCHEDULE_AUTO_BILLING,
            cluster=SCHEDULE_CLUSTER,
        )
        tasks_created["auto_billing"] = "created"
    else:
        tasks_created["auto_billing"] = "already_exists"

    logger.info(f"✅ [BillingTasks] Scheduled tasks setup: {tasks_created}")
    return tasks_created
