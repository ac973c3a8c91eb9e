# ===============================================================================
# AUTO-BILLING TESTS
# ===============================================================================

from datetime import date
from decimal import Decimal

from django.test import TestCase

from apps.billing.autobilling_service import AutoBillingService, raise_for_failures
from apps.billing.models import BillingHistoryEntry, Transaction
from apps.common.types import PartialBatchFailure
from tests.factories.cable_factories import (
    create_auto_billed_subscriber,
    create_pack,
    create_subscriber,
    fixed_clock,
    local_dt,
)


class RunAutoBillingTestCase(TestCase):
    """Charging due subscribers and advancing their schedule"""

    def setUp(self):
        self.clock = fixed_clock(2024, 1, 31, hour=12)
        self.service = AutoBillingService(self.clock)
        create_pack("Basic SD", "150.00")

    def test_charges_due_subscriber_and_advances_date(self):
        subscriber = create_auto_billed_subscriber(next_billing_date=date(2024, 1, 31))

        result = self.service.run_auto_billing()

        self.assertEqual(result["charged_count"], 1)
        self.assertEqual(result["newly_billed_subscriber_ids"], [str(subscriber.pk)])
        self.assertEqual(result["total_charged"], Decimal("150.00"))
        self.assertEqual(result["failed_count"], 0)

        subscriber.refresh_from_db()
        self.assertEqual(subscriber.balance, Decimal("150.00"))
        self.assertEqual(subscriber.next_billing_date, date(2024, 2, 29))
        self.assertEqual(subscriber.last_billing_date, self.clock.now())

        txn = Transaction.objects.get(subscriber=subscriber)
        self.assertEqual(txn.description, "Auto-billing: monthly charge for Basic SD")
        history = BillingHistoryEntry.objects.get(subscriber=subscriber)
        self.assertEqual(history.status, "charged")
        self.assertEqual(history.due_date, date(2024, 1, 31))
        self.assertEqual(history.transaction, txn)

    def test_running_twice_charges_once(self):
        subscriber = create_auto_billed_subscriber()
        self.service.run_auto_billing()
        second = self.service.run_auto_billing()

        self.assertEqual(second["charged_count"], 0)
        subscriber.refresh_from_db()
        self.assertEqual(subscriber.balance, Decimal("150.00"))
        self.assertEqual(Transaction.objects.count(), 1)

    def test_overdue_subscriber_is_charged_once_and_moves_forward_from_today(self):
        subscriber = create_auto_billed_subscriber(next_billing_date=date(2023, 11, 15), billing_cycle="quarterly")
        self.service.run_auto_billing()
        subscriber.refresh_from_db()
        self.assertEqual(subscriber.balance, Decimal("150.00"))
        self.assertEqual(subscriber.next_billing_date, date(2024, 4, 30))

    def test_not_yet_due_and_disabled_are_skipped(self):
        create_auto_billed_subscriber(next_billing_date=date(2024, 2, 1), name="Future")
        create_subscriber(name="Manual", current_pack="Basic SD", next_billing_date=date(2024, 1, 1))
        result = self.service.run_auto_billing()
        self.assertEqual(result["charged_count"], 0)
        self.assertFalse(Transaction.objects.exists())

    def test_free_pack_advances_without_transaction(self):
        create_pack("Free to Air", "0.00")
        subscriber = create_auto_billed_subscriber(pack_name="Free to Air")

        result = self.service.run_auto_billing()

        self.assertEqual(result["charged_count"], 0)
        self.assertFalse(Transaction.objects.exists())
        subscriber.refresh_from_db()
        self.assertEqual(subscriber.next_billing_date, date(2024, 2, 29))
        self.assertEqual(BillingHistoryEntry.objects.get(subscriber=subscriber).amount, Decimal("0.00"))

    def test_retired_pack_still_bills(self):
        create_pack("Legacy", "99.00", is_active=False)
        create_auto_billed_subscriber(pack_name="Legacy")
        result = self.service.run_auto_billing()
        self.assertEqual(result["total_charged"], Decimal("99.00"))

    def test_failure_is_isolated_and_retried(self):
        good = create_auto_billed_subscriber(name="Good")
        bad = create_auto_billed_subscriber(pack_name="Deleted Pack", name="Bad")

        result = self.service.run_auto_billing()

        self.assertEqual(result["charged_count"], 1)
        self.assertEqual(result["failed_count"], 1)
        self.assertEqual(result["failures"][0]["subscriber_id"], str(bad.pk))
        self.assertIn("Deleted Pack", result["failures"][0]["reason"])

        bad.refresh_from_db()
        self.assertEqual(bad.balance, Decimal("0.00"))
        self.assertEqual(bad.next_billing_date, date(2024, 1, 31))
        failure = BillingHistoryEntry.objects.get(subscriber=bad)
        self.assertEqual(failure.status, "failed")
        self.assertIsNone(failure.transaction)
        good.refresh_from_db()
        self.assertEqual(good.balance, Decimal("150.00"))

        with self.assertRaises(PartialBatchFailure):
            raise_for_failures(result)

    def test_subscriber_without_pack_fails(self):
        subscriber = create_auto_billed_subscriber(pack_name="")
        result = self.service.run_auto_billing()
        self.assertEqual(result["failures"][0]["reason"], "subscriber has no pack to bill")
        subscriber.refresh_from_db()
        self.assertEqual(subscriber.next_billing_date, date(2024, 1, 31))

    def test_explicit_run_time(self):
        create_auto_billed_subscriber(next_billing_date=date(2024, 3, 1))
        result = self.service.run_auto_billing(local_dt(2024, 3, 1, hour=8))
        self.assertEqual(result["charged_count"], 1)


class UpcomingChargesTestCase(TestCase):
    def setUp(self):
        self.service = AutoBillingService(fixed_clock(2024, 1, 20))
        create_pack("Basic SD", "150.00")

    def test_window_and_amounts(self):
        soon = create_auto_billed_subscriber(next_billing_date=date(2024, 1, 25), name="Soon")
        create_auto_billed_subscriber(next_billing_date=date(2024, 3, 25), name="Later")
        create_auto_billed_subscriber(next_billing_date=date(2024, 1, 22), pack_name="Ghost", name="Ghost")

        upcoming = self.service.upcoming_charges(days=10)

        self.assertEqual([row["name"] for row in upcoming], ["Ghost", "Soon"])
        self.assertIsNone(upcoming[0]["amount"])
        self.assertEqual(upcoming[1]["amount"], Decimal("150.00"))
        self.assertEqual(upcoming[1]["subscriber_code"], soon.code)
