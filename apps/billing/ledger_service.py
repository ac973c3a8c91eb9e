"""
Transaction log and balance reconciliation.

The stored ``Subscriber.balance`` must always equal the signed sum of the
subscriber's transactions. Both are written in the same database transaction,
with the subscriber row locked, and the balance is moved with an F() update so
concurrent writers cannot lose each other's deltas.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Final, TypedDict

from dateutil import parser as date_parser
from django.db import transaction
from django.db.models import F, Sum
from django.utils import timezone

from apps.common.clock import Clock, get_default_clock
from apps.common.constants import ZERO_AMOUNT
from apps.common.types import NotFoundError, ValidationError
from apps.common.validators import log_security_event, validate_choice, validate_financial_amount
from apps.subscribers.models import Subscriber

from .transaction_models import BALANCE_DIRECTION, Transaction, balance_effect

logger = logging.getLogger(__name__)

EDITABLE_TRANSACTION_FIELDS: Final[frozenset[str]] = frozenset({"type", "amount", "description", "date"})


class BalanceCheck(TypedDict):
    """Stored balance versus the balance rebuilt from the ledger."""

    subscriber_id: str
    subscriber_code: str
    stored: Decimal
    derived: Decimal
    difference: Decimal
    consistent: bool


def _to_aware_datetime(value: Any) -> datetime:
    """Accept a datetime or an ISO 8601 string; naive values are taken as local time"""
    if isinstance(value, str) and value.strip():
        try:
            value = date_parser.isoparse(value.strip())
        except (ValueError, OverflowError):
            raise ValidationError("date", f"not an ISO 8601 date: {value!r}") from None
    if not isinstance(value, datetime):
        raise ValidationError("date", "must be a date and time")
    return value if timezone.is_aware(value) else timezone.make_aware(value)


def lock_subscriber(subscriber_id: Any) -> Subscriber:
    """Fetch and row-lock a subscriber. Must run inside ``transaction.atomic``."""
    subscriber = Subscriber.objects.select_for_update().filter(pk=subscriber_id).first()
    if subscriber is None:
        raise NotFoundError("Subscriber", subscriber_id)
    return subscriber


class LedgerService:
    """
    💳 Append-only transaction log.

    Transactions can be corrected but never removed on their own; they go away
    only when their subscriber is deleted.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self.clock = clock or get_default_clock()

    # =========================================================================
    # WRITES
    # =========================================================================

    def record_transaction(
        self,
        subscriber_id: Any,
        type: str,
        amount: Any,
        description: str = "",
        date: datetime | None = None,
    ) -> Transaction:
        """Persist a transaction and fold it into the subscriber's balance."""
        transaction_type = validate_choice(type, Transaction.TYPE_CHOICES, "type")
        value = validate_financial_amount(amount, "amount")

        with transaction.atomic():
            subscriber = lock_subscriber(subscriber_id)
            return self._record_locked(subscriber, transaction_type, value, description, date)

    def _record_locked(
        self,
        subscriber: Subscriber,
        transaction_type: str,
        amount: Decimal,
        description: str = "",
        date: datetime | None = None,
    ) -> Transaction:
        """Write a validated transaction for a subscriber the caller has already locked."""
        txn = Transaction.objects.create(
            subscriber=subscriber,
            type=transaction_type,
            amount=amount,
            description=description or "",
            date=date or self.clock.now(),
        )
        delta = balance_effect(transaction_type, amount)
        Subscriber.objects.filter(pk=subscriber.pk).update(balance=F("balance") + delta)
        subscriber.refresh_from_db(fields=["balance"])

        log_security_event(
            event_type="transaction_recorded",
            details={
                "transaction_id": txn.pk,
                "subscriber_code": subscriber.code,
                "type": transaction_type,
                "amount": str(amount),
                "balance_after": str(subscriber.balance),
                "critical_financial_operation": True,
            },
        )
        logger.info(f"💳 [Ledger] {subscriber.code} {transaction_type} {amount} -> balance {subscriber.balance}")
        return txn

    def update_transaction(self, transaction_id: Any, updates: dict[str, Any]) -> Transaction:
        """
        Correct a transaction. The balance moves by the difference between the
        new and the old effect, which also covers a change of type.
        """
        unknown = set(updates) - EDITABLE_TRANSACTION_FIELDS
        if unknown:
            raise ValidationError(", ".join(sorted(unknown)), "field cannot be changed on a transaction")

        with transaction.atomic():
            subscriber_id = Transaction.objects.filter(pk=transaction_id).values_list("subscriber_id", flat=True).first()
            if subscriber_id is None:
                raise NotFoundError("Transaction", transaction_id)
            # Lock order: subscriber first, same as record_transaction
            subscriber = lock_subscriber(subscriber_id)
            txn = Transaction.objects.select_for_update().get(pk=transaction_id)

            old_type, old_amount = txn.type, txn.amount
            if "type" in updates:
                txn.type = validate_choice(updates["type"], Transaction.TYPE_CHOICES, "type")
            if "amount" in updates:
                txn.amount = validate_financial_amount(updates["amount"], "amount")
            if "description" in updates:
                txn.description = updates["description"] or ""
            if "date" in updates:
                txn.date = _to_aware_datetime(updates["date"])
            txn.save()

            delta = balance_effect(txn.type, txn.amount) - balance_effect(old_type, old_amount)
            if delta:
                Subscriber.objects.filter(pk=subscriber.pk).update(balance=F("balance") + delta)
            subscriber.refresh_from_db(fields=["balance"])

        log_security_event(
            event_type="transaction_updated",
            details={
                "transaction_id": txn.pk,
                "subscriber_code": subscriber.code,
                "old": {"type": old_type, "amount": str(old_amount)},
                "new": {"type": txn.type, "amount": str(txn.amount)},
                "balance_delta": str(delta),
                "critical_financial_operation": True,
            },
        )
        return txn

    # =========================================================================
    # READS
    # =========================================================================

    @staticmethod
    def list_transactions(subscriber_id: Any) -> list[Transaction]:
        """Newest first"""
        if not Subscriber.objects.filter(pk=subscriber_id).exists():
            raise NotFoundError("Subscriber", subscriber_id)
        return list(Transaction.objects.filter(subscriber_id=subscriber_id).order_by("-date", "-id"))

    @staticmethod
    def ledger_balance(subscriber_id: Any) -> Decimal:
        """Balance rebuilt from the transaction rows"""
        totals = dict(
            Transaction.objects.filter(subscriber_id=subscriber_id)
            .order_by()
            .values("type")
            .annotate(total=Sum("amount"))
            .values_list("type", "total")
        )
        return sum(
            (direction * (totals.get(kind) or ZERO_AMOUNT) for kind, direction in BALANCE_DIRECTION.items()),
            ZERO_AMOUNT,
        )

    @staticmethod
    def verify_balance(subscriber_id: Any) -> BalanceCheck:
        subscriber = Subscriber.objects.filter(pk=subscriber_id).first()
        if subscriber is None:
            raise NotFoundError("Subscriber", subscriber_id)
        derived = LedgerService.ledger_balance(subscriber.pk)
        return BalanceCheck(
            subscriber_id=str(subscriber.pk),
            subscriber_code=subscriber.code,
            stored=subscriber.balance,
            derived=derived,
            difference=subscriber.balance - derived,
            consistent=subscriber.balance == derived,
        )

    @staticmethod
    def find_balance_discrepancies() -> list[BalanceCheck]:
        """Every subscriber whose stored balance disagrees with its ledger"""
        mismatches = []
        for subscriber_id in Subscriber.objects.values_list("pk", flat=True).iterator():
            check = LedgerService.verify_balance(subscriber_id)
            if not check["consistent"]:
                logger.error(
                    f"🔥 [Ledger] Balance mismatch for {check['subscriber_code']}: "
                    f"stored {check['stored']} vs ledger {check['derived']}"
                )
                mismatches.append(check)
        return mismatches
