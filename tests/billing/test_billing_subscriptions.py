# ===============================================================================
# SUBSCRIPTION LEDGER TESTS
# ===============================================================================

import uuid
from datetime import date
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.test import TestCase, override_settings

from apps.billing.autobilling_service import AutoBillingService
from apps.billing.ledger_service import LedgerService
from apps.billing.models import BillingHistoryEntry, SubscriptionEntry, Transaction
from apps.billing.subscription_service import SubscriptionLedgerService
from apps.catalog.services import PackCatalogService
from apps.common.types import ConflictError, NotFoundError, ValidationError
from apps.subscribers.services import SubscriberService
from tests.factories.cable_factories import create_entry, create_pack, create_subscriber, fixed_clock, local_dt


class AddSubscriptionTestCase(TestCase):
    """Selling packs"""

    def setUp(self):
        self.clock = fixed_clock(2023, 1, 1)
        self.service = SubscriptionLedgerService(self.clock)
        self.pack = create_pack("HD Premium", "500.00")
        self.subscriber = create_subscriber()

    def test_charges_price_times_duration(self):
        entry = self.service.add_subscription(self.subscriber.pk, "HD Premium", 3)

        self.subscriber.refresh_from_db()
        self.assertEqual(self.subscriber.balance, Decimal("1500.00"))
        self.assertEqual(self.subscriber.current_pack, "HD Premium")
        self.assertEqual(entry.start_date, local_dt(2023, 1, 1))
        self.assertEqual(entry.end_date, local_dt(2023, 4, 1))
        self.assertEqual(entry.total_charged, Decimal("1500.00"))

        txn = Transaction.objects.get(subscriber=self.subscriber)
        self.assertEqual(txn.type, "charge")
        self.assertEqual(txn.amount, Decimal("1500.00"))
        self.assertEqual(txn.description, "Subscription: HD Premium for 3 month(s)")

    def test_charge_can_be_switched_off(self):
        self.service.add_subscription(self.subscriber.pk, "HD Premium", 2, charge=False)
        self.subscriber.refresh_from_db()
        self.assertEqual(self.subscriber.balance, Decimal("0.00"))
        self.assertFalse(Transaction.objects.exists())

    @override_settings(BILLING_CHARGE_ON_SUBSCRIBE=False)
    def test_charge_flag_from_settings(self):
        self.service.add_subscription(self.subscriber.pk, "HD Premium", 1)
        self.assertFalse(Transaction.objects.exists())

    def test_free_pack_records_no_transaction(self):
        create_pack("Free to Air", "0.00")
        entry = self.service.add_subscription(self.subscriber.pk, "Free to Air", 6)
        self.assertEqual(entry.pack_price, Decimal("0.00"))
        self.assertFalse(Transaction.objects.exists())

    def test_month_end_start_clamps(self):
        self.clock.set(local_dt(2024, 1, 31))
        entry = self.service.add_subscription(self.subscriber.pk, "HD Premium", 1)
        self.assertEqual(entry.end_date, local_dt(2024, 2, 29))

    def test_second_active_subscription_conflicts(self):
        self.service.add_subscription(self.subscriber.pk, "HD Premium", 3)
        with self.assertRaises(ConflictError):
            self.service.add_subscription(self.subscriber.pk, "HD Premium", 1)
        self.assertEqual(SubscriptionEntry.objects.count(), 1)
        self.subscriber.refresh_from_db()
        self.assertEqual(self.subscriber.balance, Decimal("1500.00"))

    def test_lapsed_subscription_is_expired_before_adding(self):
        first = self.service.add_subscription(self.subscriber.pk, "HD Premium", 1)
        self.clock.set(local_dt(2023, 2, 5))

        second = self.service.add_subscription(self.subscriber.pk, "HD Premium", 1)

        first.refresh_from_db()
        self.assertEqual(first.status, "expired")
        self.assertEqual(first.ended_at, local_dt(2023, 2, 5))
        self.assertEqual(second.status, "active")
        self.assertEqual(self.subscriber.subscription_history.count(), 2)

    def test_rejects_invalid_durations(self):
        for duration in (0, -1, 1.5, "abc", None, True, 121):
            with self.assertRaises(ValidationError, msg=repr(duration)):
                self.service.add_subscription(self.subscriber.pk, "HD Premium", duration)
        self.assertFalse(SubscriptionEntry.objects.exists())

    def test_unknown_pack_and_subscriber(self):
        with self.assertRaises(NotFoundError):
            self.service.add_subscription(self.subscriber.pk, "Nope", 1)
        with self.assertRaises(NotFoundError):
            self.service.add_subscription(uuid.uuid4(), "HD Premium", 1)

    def test_retired_pack_cannot_be_sold(self):
        PackCatalogService.retire_pack(self.pack.pk)
        with self.assertRaises(ValidationError):
            self.service.add_subscription(self.subscriber.pk, "HD Premium", 1)

    def test_price_snapshot_survives_catalog_change(self):
        entry = self.service.add_subscription(self.subscriber.pk, "HD Premium", 3)
        PackCatalogService.update_pack(self.pack.pk, price="900")
        entry.refresh_from_db()
        self.assertEqual(entry.pack_price, Decimal("500.00"))


class CancelSubscriptionTestCase(TestCase):
    """Cancellation with suggested and overridden refunds"""

    def setUp(self):
        self.clock = fixed_clock(2023, 1, 1)
        self.service = SubscriptionLedgerService(self.clock)
        create_pack("HD Premium", "500.00")
        self.subscriber = create_subscriber()
        self.entry = self.service.add_subscription(self.subscriber.pk, "HD Premium", 3)

    def _balance(self):
        self.subscriber.refresh_from_db()
        return self.subscriber.balance

    def test_suggested_refund_after_thirty_days(self):
        self.clock.set(local_dt(2023, 1, 31))

        entry = self.service.cancel_subscription(self.subscriber.pk)

        # 60 of 90 days unused: 1500 * 60 / 90 = 1000
        self.assertEqual(entry.status, "cancelled")
        self.assertEqual(entry.ended_at, local_dt(2023, 1, 31))
        refund = Transaction.objects.get(subscriber=self.subscriber, type="refund")
        self.assertEqual(refund.amount, Decimal("1000.00"))
        self.assertEqual(refund.description, "Refund for cancelled HD Premium subscription")
        self.assertEqual(self._balance(), Decimal("500.00"))
        self.subscriber.refresh_from_db()
        self.assertEqual(self.subscriber.current_pack, "")

    def test_refund_override(self):
        self.clock.set(local_dt(2023, 1, 31))
        self.service.cancel_subscription(self.subscriber.pk, refund_amount="200")
        self.assertEqual(self._balance(), Decimal("1300.00"))

    def test_zero_override_records_no_refund(self):
        self.service.cancel_subscription(self.subscriber.pk, refund_amount=0)
        self.assertFalse(Transaction.objects.filter(type="refund").exists())
        self.assertEqual(self._balance(), Decimal("1500.00"))

    def test_override_above_charged_is_rejected(self):
        with self.assertRaises(ValidationError):
            self.service.cancel_subscription(self.subscriber.pk, refund_amount="1500.01")
        self.entry.refresh_from_db()
        self.assertEqual(self.entry.status, "active")
        self.assertEqual(self._balance(), Decimal("1500.00"))

    def test_cancel_without_active_subscription(self):
        self.service.cancel_subscription(self.subscriber.pk)
        with self.assertRaises(NotFoundError):
            self.service.cancel_subscription(self.subscriber.pk)

    def test_lapsed_subscription_cannot_be_cancelled(self):
        self.clock.set(local_dt(2023, 4, 2))
        with self.assertRaises(NotFoundError):
            self.service.cancel_subscription(self.subscriber.pk)
        self.assertFalse(Transaction.objects.filter(type="refund").exists())

    def test_can_subscribe_again_after_cancel(self):
        self.service.cancel_subscription(self.subscriber.pk, refund_amount=0)
        entry = self.service.add_subscription(self.subscriber.pk, "HD Premium", 1)
        self.assertTrue(entry.is_active)

    def test_cancel_switches_off_auto_billing(self):
        SubscriberService(self.clock).configure_auto_billing(
            self.subscriber.pk, "monthly", True, next_billing_date=date(2023, 1, 5)
        )

        self.service.cancel_subscription(self.subscriber.pk, refund_amount=0)

        self.subscriber.refresh_from_db()
        self.assertIsNone(self.subscriber.current_subscription)
        self.assertFalse(self.subscriber.auto_charge_enabled)

        billing = AutoBillingService(self.clock)
        for day in (5, 6, 7):
            result = billing.run_auto_billing(local_dt(2023, 1, day))
            self.assertEqual((result["charged_count"], result["failed_count"]), (0, 0), msg=day)
        self.assertFalse(BillingHistoryEntry.objects.exists())
        self.assertEqual(self._balance(), Decimal("1500.00"))


class ExpireSubscriptionsTestCase(TestCase):
    def setUp(self):
        self.clock = fixed_clock(2023, 1, 1)
        self.service = SubscriptionLedgerService(self.clock)
        create_pack("HD Premium", "500.00")
        self.subscriber = create_subscriber()
        self.entry = self.service.add_subscription(self.subscriber.pk, "HD Premium", 1)

    def test_expires_only_when_due(self):
        self.assertEqual(self.service.expire_due_subscriptions(local_dt(2023, 1, 31)), [])

        expired = self.service.expire_due_subscriptions(local_dt(2023, 2, 1))

        self.assertEqual(expired, [str(self.subscriber.pk)])
        self.entry.refresh_from_db()
        self.assertEqual(self.entry.status, "expired")
        # Expiry keeps the pack on the subscriber for auto-billing
        self.subscriber.refresh_from_db()
        self.assertEqual(self.subscriber.current_pack, "HD Premium")

    def test_sweep_is_idempotent(self):
        self.service.expire_due_subscriptions(local_dt(2023, 3, 1))
        self.assertEqual(self.service.expire_due_subscriptions(local_dt(2023, 3, 1)), [])

    def test_status_summary(self):
        status = self.service.get_subscription_status(self.subscriber.pk)
        self.assertTrue(status["is_active"])
        self.assertEqual(status["days_remaining"], 31)
        self.assertFalse(status["expiring_soon"])

        self.clock.set(local_dt(2023, 1, 26))
        status = self.service.get_subscription_status(self.subscriber.pk)
        self.assertEqual(status["days_remaining"], 6)
        self.assertTrue(status["expiring_soon"])
        self.assertEqual(status["status_text"], "6 day(s) remaining")

        self.clock.set(local_dt(2023, 2, 2))
        status = self.service.get_subscription_status(self.subscriber.pk)
        self.assertFalse(status["is_active"])
        self.assertEqual(status["status_text"], "No active subscription")

    def test_expiring_within(self):
        other = create_subscriber(name="Other")
        self.service.add_subscription(other.pk, "HD Premium", 6)
        self.clock.set(local_dt(2023, 1, 28))
        self.assertEqual(self.service.expiring_within(days=7), [self.entry])


class SubscriptionEntryIntegrityTestCase(TestCase):
    """History rows are frozen once written"""

    def setUp(self):
        self.subscriber = create_subscriber()
        self.entry = create_entry(self.subscriber, local_dt(2023, 1, 1), local_dt(2023, 4, 1))

    def test_frozen_fields_cannot_change(self):
        for field, value in (("pack_price", Decimal("1.00")), ("pack_name", "Other"), ("duration", 12)):
            entry = SubscriptionEntry.objects.get(pk=self.entry.pk)
            setattr(entry, field, value)
            with self.assertRaises(ValidationError, msg=field):
                entry.save()

    def test_terminal_status_is_final(self):
        self.entry.mark_expired(local_dt(2023, 4, 1))
        with self.assertRaises(ValidationError):
            self.entry.mark_cancelled(local_dt(2023, 4, 2))

        entry = SubscriptionEntry.objects.get(pk=self.entry.pk)
        entry.status = "active"
        with self.assertRaises(ValidationError):
            entry.save()

    def test_end_must_follow_start(self):
        with self.assertRaises(ValidationError):
            create_entry(self.subscriber, local_dt(2023, 5, 1), local_dt(2023, 5, 1), status="expired")

    def test_database_allows_one_active_entry(self):
        with self.assertRaises(IntegrityError), transaction.atomic():
            create_entry(self.subscriber, local_dt(2023, 2, 1), local_dt(2023, 3, 1))

    def test_days_remaining_floors(self):
        self.assertEqual(self.entry.days_remaining(local_dt(2023, 3, 31, hour=11)), 0)
        self.assertEqual(self.entry.days_remaining(local_dt(2023, 3, 30, hour=11)), 1)
        self.assertEqual(self.entry.days_remaining(local_dt(2023, 5, 1)), 0)


class SubscriptionLifecycleTestCase(TestCase):
    """Full add, cancel and expire sequences against history and balance"""

    def setUp(self):
        self.clock = fixed_clock(2023, 1, 1)
        self.service = SubscriptionLedgerService(self.clock)
        create_pack("HD Premium", "500.00")
        create_pack("Basic SD", "150.00")
        self.subscriber = create_subscriber()

    def test_history_keeps_every_entry(self):
        first = self.service.add_subscription(self.subscriber.pk, "HD Premium", 3)

        self.clock.set(local_dt(2023, 1, 31))
        self.service.cancel_subscription(self.subscriber.pk)
        self.assertIsNone(self.subscriber.current_subscription)

        self.clock.set(local_dt(2023, 2, 1))
        second = self.service.add_subscription(self.subscriber.pk, "Basic SD", 1)

        self.assertEqual(self.service.expire_due_subscriptions(local_dt(2023, 3, 2)), [str(self.subscriber.pk)])
        self.assertIsNone(self.subscriber.current_subscription)

        self.clock.set(local_dt(2023, 3, 5))
        third = self.service.add_subscription(self.subscriber.pk, "HD Premium", 1)

        history = list(self.subscriber.subscription_history)
        self.assertEqual(history, [first, second, third])
        self.assertEqual(self.subscriber.current_subscription, third)

        ended = {entry.pk: (entry.status, entry.ended_at) for entry in history[:-1]}
        self.assertEqual(ended[first.pk], ("cancelled", local_dt(2023, 1, 31)))
        self.assertEqual(ended[second.pk], ("expired", local_dt(2023, 3, 2)))
        self.assertEqual(SubscriptionEntry.objects.filter(subscriber=self.subscriber, status="active").count(), 1)

    def test_balance_stays_consistent_across_services(self):
        ledger = LedgerService(self.clock)
        self.service.add_subscription(self.subscriber.pk, "HD Premium", 3)
        SubscriberService(self.clock).configure_auto_billing(
            self.subscriber.pk, "monthly", True, next_billing_date=date(2023, 1, 15)
        )

        AutoBillingService(self.clock, ledger).run_auto_billing(local_dt(2023, 1, 15))
        self.clock.set(local_dt(2023, 1, 31))
        self.service.cancel_subscription(self.subscriber.pk)

        auto_charge = Transaction.objects.get(subscriber=self.subscriber, description__startswith="Auto-billing")
        ledger.update_transaction(auto_charge.pk, {"amount": "450"})

        # 1500 charged, 500 auto-billed then corrected to 450, 1000 refunded
        check = LedgerService.verify_balance(self.subscriber.pk)
        self.assertTrue(check["consistent"])
        self.assertEqual(check["stored"], Decimal("950.00"))
        self.assertEqual(LedgerService.find_balance_discrepancies(), [])
