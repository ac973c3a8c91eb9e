"""
Auto-billing scheduler.

Charges every subscriber whose next billing date has arrived and advances the
date by one cycle. Each subscriber is billed in its own database transaction;
a failure rolls back only that subscriber, is written to billing history and
leaves the billing date where it was so the next run retries it.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, TypedDict

from django.db import transaction

from apps.catalog.services import PackCatalogService
from apps.common.clock import Clock, get_default_clock
from apps.common.constants import ZERO_AMOUNT
from apps.common.types import BusinessError, PartialBatchFailure
from apps.common.validators import log_security_event
from apps.subscribers.models import Subscriber

from .billing_cycles import calculate_next_billing_date, local_date
from .billing_models import BillingHistoryEntry
from .config import get_upcoming_window_days
from .ledger_service import LedgerService

logger = logging.getLogger(__name__)


# ===============================================================================
# TYPE DEFINITIONS
# ===============================================================================


class BillingFailure(TypedDict):
    subscriber_id: str
    reason: str


class AutoBillingResult(TypedDict):
    """Result of an auto-billing run."""

    charged_count: int
    newly_billed_subscriber_ids: list[str]
    failed_count: int
    failures: list[BillingFailure]
    total_charged: Decimal


class UpcomingCharge(TypedDict):
    subscriber_id: str
    subscriber_code: str
    name: str
    pack_name: str
    billing_cycle: str
    due_date: date
    amount: Decimal | None


class _NothingToBill(Exception):
    """Subscriber stopped being due between selection and lock."""


# ===============================================================================
# AUTO-BILLING SERVICE
# ===============================================================================


class AutoBillingService:
    """💳 Recurring charges for subscribers with auto-charge enabled"""

    def __init__(self, clock: Clock | None = None, ledger: LedgerService | None = None) -> None:
        self.clock = clock or get_default_clock()
        self.ledger = ledger or LedgerService(self.clock)

    @staticmethod
    def due_subscribers(today: date) -> list[Any]:
        return list(
            Subscriber.objects.filter(auto_charge_enabled=True, next_billing_date__lte=today)
            .order_by("next_billing_date", "code")
            .values_list("pk", flat=True)
        )

    def run_auto_billing(self, now: datetime | None = None) -> AutoBillingResult:
        """
        Bill everyone who is due as of ``now``.

        Running twice for the same ``now`` charges nobody twice: a billed
        subscriber's next date has already moved past today.
        """
        now = now or self.clock.now()
        today = local_date(now)

        result = AutoBillingResult(
            charged_count=0,
            newly_billed_subscriber_ids=[],
            failed_count=0,
            failures=[],
            total_charged=ZERO_AMOUNT,
        )

        for subscriber_id in self.due_subscribers(today):
            try:
                amount = self._bill_one(subscriber_id, now, today)
            except _NothingToBill:
                continue
            except Exception as e:
                logger.exception(f"🔥 [AutoBilling] Failed to bill subscriber {subscriber_id}: {e}")
                reason = str(e) or e.__class__.__name__
                self._record_failure(subscriber_id, now, reason)
                result["failed_count"] += 1
                result["failures"].append(BillingFailure(subscriber_id=str(subscriber_id), reason=reason))
                continue

            if amount > 0:
                result["charged_count"] += 1
                result["newly_billed_subscriber_ids"].append(str(subscriber_id))
                result["total_charged"] += amount

        log_security_event(
            event_type="auto_billing_completed",
            details={
                "run_at": now.isoformat(),
                "charged_count": result["charged_count"],
                "failed_count": result["failed_count"],
                "total_charged": str(result["total_charged"]),
                "critical_financial_operation": True,
            },
        )
        logger.info(
            f"💳 [AutoBilling] Run complete: {result['charged_count']} charged, "
            f"{result['failed_count']} failed, total {result['total_charged']}"
        )
        return result

    def _bill_one(self, subscriber_id: Any, now: datetime, today: date) -> Decimal:
        """Charge one subscriber and advance its schedule. Returns the amount charged."""
        with transaction.atomic():
            subscriber = Subscriber.objects.select_for_update().filter(pk=subscriber_id).first()
            if (
                subscriber is None
                or not subscriber.auto_charge_enabled
                or subscriber.next_billing_date is None
                or subscriber.next_billing_date > today
            ):
                raise _NothingToBill()

            if not subscriber.current_pack:
                raise BusinessError("subscriber has no pack to bill")
            price = PackCatalogService.get_pack_price(subscriber.current_pack)
            next_date = calculate_next_billing_date(today, subscriber.billing_cycle)

            txn = None
            if price > 0:
                txn = self.ledger._record_locked(
                    subscriber,
                    "charge",
                    price,
                    description=f"Auto-billing: {subscriber.billing_cycle} charge for {subscriber.current_pack}",
                    date=now,
                )

            due_date = subscriber.next_billing_date
            subscriber.last_billing_date = now
            subscriber.next_billing_date = next_date
            subscriber.save(update_fields=["last_billing_date", "next_billing_date", "updated_at"])

            BillingHistoryEntry.objects.create(
                subscriber=subscriber,
                billing_cycle=subscriber.billing_cycle,
                pack_name=subscriber.current_pack,
                amount=price,
                due_date=due_date,
                generated_at=now,
                transaction=txn,
                status="charged",
            )
        return price

    @staticmethod
    def _record_failure(subscriber_id: Any, now: datetime, reason: str) -> None:
        subscriber = Subscriber.objects.filter(pk=subscriber_id).first()
        if subscriber is None:
            return
        BillingHistoryEntry.objects.create(
            subscriber=subscriber,
            billing_cycle=subscriber.billing_cycle,
            pack_name=subscriber.current_pack,
            amount=ZERO_AMOUNT,
            due_date=subscriber.next_billing_date,
            generated_at=now,
            status="failed",
            failure_reason=reason[:1000],
        )

    # =========================================================================
    # PREVIEW
    # =========================================================================

    def upcoming_charges(self, days: int | None = None, now: datetime | None = None) -> list[UpcomingCharge]:
        """Auto-charge subscribers due within the window and what they would pay"""
        window = days if days is not None else get_upcoming_window_days()
        today = local_date(now or self.clock.now())
        subscribers = Subscriber.objects.filter(
            auto_charge_enabled=True,
            next_billing_date__isnull=False,
            next_billing_date__lte=today + timedelta(days=window),
        ).order_by("next_billing_date", "code")

        upcoming: list[UpcomingCharge] = []
        for subscriber in subscribers:
            try:
                amount: Decimal | None = PackCatalogService.get_pack_price(subscriber.current_pack)
            except BusinessError:
                amount = None
            upcoming.append(
                UpcomingCharge(
                    subscriber_id=str(subscriber.pk),
                    subscriber_code=subscriber.code,
                    name=subscriber.name,
                    pack_name=subscriber.current_pack,
                    billing_cycle=subscriber.billing_cycle,
                    due_date=subscriber.next_billing_date,
                    amount=amount,
                )
            )
        return upcoming


def raise_for_failures(result: AutoBillingResult) -> None:
    """Turn a partially failed run into an exception for strict callers"""
    if result["failures"]:
        raise PartialBatchFailure([dict(failure) for failure in result["failures"]])
