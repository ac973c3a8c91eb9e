"""
Subscription ledger service.

Adds, cancels and expires subscription entries. A subscriber holds at most one
active entry; every operation that looks at the current subscription first
expires an entry whose end date has passed, so callers never see a lapsed
entry reported as active.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, TypedDict

from django.db import transaction

from apps.catalog.services import PackCatalogService
from apps.common.clock import Clock, get_default_clock
from apps.common.constants import EXPIRING_SOON_DAYS, MAX_SUBSCRIPTION_MONTHS
from apps.common.types import ConflictError, NotFoundError, ValidationError
from apps.common.validators import log_security_event
from apps.subscribers.models import Subscriber

from .billing_cycles import add_months
from .config import charge_on_subscribe
from .ledger_service import LedgerService, lock_subscriber
from .refund_service import RefundCalculator
from .subscription_models import SubscriptionEntry

logger = logging.getLogger(__name__)


# ===============================================================================
# TYPE DEFINITIONS
# ===============================================================================


class SubscriptionStatus(TypedDict):
    """Summary used for subscriber badges and lists."""

    is_active: bool
    pack_name: str | None
    end_date: datetime | None
    days_remaining: int
    status_text: str
    expiring_soon: bool


def _validate_duration(duration: Any) -> int:
    if isinstance(duration, bool):
        raise ValidationError("duration", "must be a whole number of months")
    try:
        months = int(duration)
    except (TypeError, ValueError):
        raise ValidationError("duration", "must be a whole number of months") from None
    if months != duration and str(months) != str(duration):
        raise ValidationError("duration", "must be a whole number of months")
    if months < 1:
        raise ValidationError("duration", "must be at least one month")
    if months > MAX_SUBSCRIPTION_MONTHS:
        raise ValidationError("duration", f"must not exceed {MAX_SUBSCRIPTION_MONTHS} months")
    return months


# ===============================================================================
# SUBSCRIPTION LEDGER
# ===============================================================================


class SubscriptionLedgerService:
    """📺 Subscription lifecycle for one operator's subscribers"""

    def __init__(
        self,
        clock: Clock | None = None,
        charge_on_subscribe: bool | None = None,
        ledger: LedgerService | None = None,
    ) -> None:
        self.clock = clock or get_default_clock()
        self._charge_on_subscribe = charge_on_subscribe
        self.ledger = ledger or LedgerService(self.clock)

    @property
    def charges_on_subscribe(self) -> bool:
        if self._charge_on_subscribe is None:
            return charge_on_subscribe()
        return self._charge_on_subscribe

    # =========================================================================
    # ADD
    # =========================================================================

    def add_subscription(
        self,
        subscriber_id: Any,
        pack_name: str,
        duration: Any,
        charge: bool | None = None,
    ) -> SubscriptionEntry:
        """
        Sell ``pack_name`` for ``duration`` months starting now.

        Raises ConflictError while another subscription is active; the caller
        has to cancel it first. When charging is enabled (globally or through
        ``charge``) the full term is charged up front.
        """
        months = _validate_duration(duration)
        should_charge = self.charges_on_subscribe if charge is None else charge

        with transaction.atomic():
            subscriber = lock_subscriber(subscriber_id)
            pack = PackCatalogService.get_pack(pack_name)
            if not pack.is_active:
                raise ValidationError("pack_name", f"pack '{pack.name}' is retired and cannot be sold")

            now = self.clock.now()
            self._expire_if_lapsed(subscriber, now)

            current = subscriber.current_subscription
            if current is not None:
                raise ConflictError(
                    f"Subscriber {subscriber.code} already has an active {current.pack_name} "
                    f"subscription until {current.end_date:%Y-%m-%d}; cancel it first"
                )

            entry = SubscriptionEntry.objects.create(
                subscriber=subscriber,
                pack_name=pack.name,
                pack_price=pack.price,
                start_date=now,
                end_date=add_months(now, months),
                duration=months,
                status="active",
                subscribed_at=now,
            )
            subscriber.current_pack = pack.name
            subscriber.save(update_fields=["current_pack", "updated_at"])

            charge_amount = entry.total_charged
            if should_charge and charge_amount > 0:
                self.ledger._record_locked(
                    subscriber,
                    "charge",
                    charge_amount,
                    description=f"Subscription: {pack.name} for {months} month(s)",
                    date=now,
                )

        log_security_event(
            event_type="subscription_added",
            details={
                "subscriber_code": subscriber.code,
                "pack": entry.pack_name,
                "price": str(entry.pack_price),
                "duration_months": months,
                "end_date": entry.end_date.isoformat(),
                "charged": str(charge_amount) if should_charge else "0",
            },
        )
        logger.info(f"✅ [Subscription] {subscriber.code} subscribed to {pack.name} for {months} month(s)")
        return entry

    # =========================================================================
    # CANCEL
    # =========================================================================

    def cancel_subscription(self, subscriber_id: Any, refund_amount: Any = None) -> SubscriptionEntry:
        """
        End the active subscription now and optionally refund part of it.

        ``refund_amount=None`` applies the calculator's suggestion; any other
        value from zero to the amount charged overrides it.
        """
        with transaction.atomic():
            subscriber = lock_subscriber(subscriber_id)
            now = self.clock.now()
            self._expire_if_lapsed(subscriber, now)

            entry = subscriber.current_subscription
            if entry is None:
                raise NotFoundError("Active subscription", subscriber.code)

            if refund_amount is None:
                refund = RefundCalculator.compute_refund(entry, now)
            else:
                refund = RefundCalculator.validate_refund_amount(entry, refund_amount)

            entry.mark_cancelled(now)
            # Nothing left to bill, so auto-charge stops with the pack
            subscriber.current_pack = ""
            subscriber.auto_charge_enabled = False
            subscriber.save(update_fields=["current_pack", "auto_charge_enabled", "updated_at"])

            if refund > 0:
                self.ledger._record_locked(
                    subscriber,
                    "refund",
                    refund,
                    description=f"Refund for cancelled {entry.pack_name} subscription",
                    date=now,
                )

        log_security_event(
            event_type="subscription_cancelled",
            details={
                "subscriber_code": subscriber.code,
                "pack": entry.pack_name,
                "refund": str(refund),
                "suggested": refund_amount is None,
            },
        )
        return entry

    # =========================================================================
    # EXPIRY
    # =========================================================================

    def expire_due_subscriptions(self, now: datetime | None = None) -> list[str]:
        """
        Mark every active entry whose end date has passed as expired.

        Safe to run repeatedly; returns the ids of subscribers whose entry was
        expired by this call.
        """
        now = now or self.clock.now()
        due_subscriber_ids = list(
            SubscriptionEntry.objects.filter(status="active", end_date__lte=now)
            .values_list("subscriber_id", flat=True)
            .distinct()
        )

        expired: list[str] = []
        for subscriber_id in due_subscriber_ids:
            with transaction.atomic():
                subscriber = Subscriber.objects.select_for_update().filter(pk=subscriber_id).first()
                # Deleted or already handled by a concurrent writer
                if subscriber is not None and self._expire_if_lapsed(subscriber, now):
                    expired.append(str(subscriber_id))

        if expired:
            logger.info(f"⏰ [Subscription] Expired {len(expired)} subscription(s)")
        return expired

    @staticmethod
    def _expire_if_lapsed(subscriber: Subscriber, now: datetime) -> bool:
        """Expire the subscriber's lapsed entry, if any. Caller holds the row lock."""
        lapsed = SubscriptionEntry.objects.filter(subscriber=subscriber, status="active", end_date__lte=now).first()
        if lapsed is None:
            return False
        lapsed.mark_expired(now)
        log_security_event(
            event_type="subscription_expired",
            details={"subscriber_code": subscriber.code, "pack": lapsed.pack_name},
        )
        return True

    # =========================================================================
    # READS
    # =========================================================================

    def get_subscription_status(self, subscriber_id: Any) -> SubscriptionStatus:
        subscriber = Subscriber.objects.filter(pk=subscriber_id).first()
        if subscriber is None:
            raise NotFoundError("Subscriber", subscriber_id)
        now = self.clock.now()
        entry = subscriber.current_subscription
        if entry is None or entry.is_lapsed(now):
            return SubscriptionStatus(
                is_active=False,
                pack_name=None,
                end_date=None,
                days_remaining=0,
                status_text="No active subscription",
                expiring_soon=False,
            )

        days = entry.days_remaining(now)
        return SubscriptionStatus(
            is_active=True,
            pack_name=entry.pack_name,
            end_date=entry.end_date,
            days_remaining=days,
            status_text=f"{days} day(s) remaining",
            expiring_soon=days <= EXPIRING_SOON_DAYS,
        )

    def expiring_within(self, days: int = 30) -> list[SubscriptionEntry]:
        """Active entries ending inside the next ``days`` days, soonest first"""
        now = self.clock.now()
        return list(
            SubscriptionEntry.objects.filter(
                status="active",
                end_date__gt=now,
                end_date__lte=now + timedelta(days=days),
            )
            .select_related("subscriber")
            .order_by("end_date")
        )
