"""
Subscriber registry service.

Registration, profile edits, auto-billing configuration and deletion. Balance
and subscription fields are owned by the billing app and cannot be edited here.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Final, TypedDict

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from apps.billing.billing_cycles import calculate_next_billing_date, local_date
from apps.billing.config import get_default_billing_cycle
from apps.billing.ledger_service import LedgerService, lock_subscriber
from apps.common.clock import Clock, get_default_clock
from apps.common.types import NotFoundError, ValidationError
from apps.common.validators import log_security_event, validate_choice, validate_financial_amount
from apps.inventory.models import SetTopBox
from apps.subscribers.models import Subscriber

logger = logging.getLogger(__name__)

PROFILE_FIELDS: Final[frozenset[str]] = frozenset(
    {"name", "mobile", "stb_number", "region", "latitude", "longitude"}
)


class SubscriberRegistrationData(TypedDict, total=False):
    """Fields accepted when registering a subscriber."""

    name: str
    mobile: str
    stb_number: str
    region: str
    latitude: Decimal | float | str | None
    longitude: Decimal | float | str | None
    billing_cycle: str
    join_date: date


def _full_clean(subscriber: Subscriber, exclude: list[str] | None = None) -> None:
    try:
        subscriber.full_clean(exclude=exclude)
    except DjangoValidationError as e:
        field, messages = next(iter(e.message_dict.items()))
        raise ValidationError(field, "; ".join(messages)) from e


class SubscriberService:
    """👤 Subscriber registry"""

    def __init__(self, clock: Clock | None = None, ledger: LedgerService | None = None) -> None:
        self.clock = clock or get_default_clock()
        self.ledger = ledger or LedgerService(self.clock)

    @staticmethod
    def get_subscriber(subscriber_id: Any) -> Subscriber:
        subscriber = Subscriber.objects.filter(pk=subscriber_id).first()
        if subscriber is None:
            raise NotFoundError("Subscriber", subscriber_id)
        return subscriber

    def register_subscriber(self, data: SubscriberRegistrationData, opening_balance: Any = 0) -> Subscriber:
        """
        Create a subscriber. A non-zero opening balance is booked through the
        ledger (a charge for money owed, a payment for credit) so the balance
        always matches the transaction log.
        """
        unknown = set(data) - PROFILE_FIELDS - {"billing_cycle", "join_date"}
        if unknown:
            raise ValidationError(", ".join(sorted(unknown)), "not a registration field")
        opening = validate_financial_amount(opening_balance, "opening_balance", allow_zero=True, allow_negative=True)

        with transaction.atomic():
            subscriber = Subscriber(**data)
            if not data.get("join_date"):
                subscriber.join_date = local_date(self.clock.now())
            cycle = data.get("billing_cycle") or get_default_billing_cycle()
            subscriber.billing_cycle = validate_choice(cycle, Subscriber.BILLING_CYCLE_CHOICES, "billing_cycle")
            _full_clean(subscriber, exclude=["code"])
            subscriber.save()

            if opening > 0:
                self.ledger._record_locked(subscriber, "charge", opening, description="Opening balance")
            elif opening < 0:
                self.ledger._record_locked(subscriber, "payment", -opening, description="Opening credit")

        logger.info(f"👤 [Subscribers] Registered {subscriber.code} ({subscriber.name})")
        return subscriber

    @staticmethod
    def update_profile(subscriber_id: Any, updates: dict[str, Any]) -> Subscriber:
        """Edit contact and location details only"""
        forbidden = set(updates) - PROFILE_FIELDS
        if forbidden:
            raise ValidationError(", ".join(sorted(forbidden)), "cannot be edited through the profile")

        with transaction.atomic():
            subscriber = lock_subscriber(subscriber_id)
            for field, value in updates.items():
                setattr(subscriber, field, value)
            _full_clean(subscriber)
            subscriber.save(update_fields=[*updates, "updated_at"])
        return subscriber

    def configure_auto_billing(
        self,
        subscriber_id: Any,
        billing_cycle: str,
        enabled: bool,
        next_billing_date: date | None = None,
    ) -> Subscriber:
        """
        Set the billing cycle and switch auto-charge on or off.

        Turning auto-charge on without an existing or explicit billing date
        schedules the first charge one cycle from today.
        """
        cycle = validate_choice(billing_cycle, Subscriber.BILLING_CYCLE_CHOICES, "billing_cycle")

        with transaction.atomic():
            subscriber = lock_subscriber(subscriber_id)
            if next_billing_date is not None:
                subscriber.next_billing_date = next_billing_date
            elif enabled and not subscriber.auto_charge_enabled:
                subscriber.next_billing_date = calculate_next_billing_date(self.clock.now(), cycle)
            subscriber.billing_cycle = cycle
            subscriber.auto_charge_enabled = enabled
            subscriber.save(update_fields=["billing_cycle", "auto_charge_enabled", "next_billing_date", "updated_at"])

        logger.info(
            f"💳 [Subscribers] {subscriber.code} auto-charge {'on' if enabled else 'off'} "
            f"({cycle}, next {subscriber.next_billing_date})"
        )
        return subscriber

    @staticmethod
    def delete_subscriber(subscriber_id: Any) -> None:
        """
        Remove a subscriber with its transactions, subscriptions, billing
        history and complaints. Assigned set-top boxes return to stock.
        """
        with transaction.atomic():
            subscriber = lock_subscriber(subscriber_id)
            code, balance = subscriber.code, subscriber.balance
            released = SetTopBox.objects.filter(subscriber=subscriber, status="assigned").update(
                status="available", subscriber=None
            )
            subscriber.delete()

        log_security_event(
            event_type="subscriber_deleted",
            details={"subscriber_code": code, "balance_at_deletion": str(balance), "stbs_released": released},
        )
