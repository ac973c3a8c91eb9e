# ===============================================================================
# SUBSCRIBER REGISTRY TESTS
# ===============================================================================

import uuid
from datetime import date
from decimal import Decimal

from django.test import TestCase, override_settings

from apps.billing.models import BillingHistoryEntry, SubscriptionEntry, Transaction
from apps.billing.subscription_service import SubscriptionLedgerService
from apps.common.types import NotFoundError, ValidationError
from apps.complaints.models import Complaint
from apps.complaints.services import ComplaintService
from apps.inventory.models import SetTopBox
from apps.inventory.services import StbInventoryService
from apps.subscribers.models import Subscriber
from apps.subscribers.services import SubscriberService
from tests.factories.cable_factories import create_pack, create_subscriber, fixed_clock


class SubscriberRegistrationTestCase(TestCase):
    """Registration, codes and opening balances"""

    def setUp(self):
        self.clock = fixed_clock(2024, 1, 31)
        self.service = SubscriberService(self.clock)

    def test_codes_are_sequential(self):
        first = self.service.register_subscriber({"name": "Asha"})
        second = self.service.register_subscriber({"name": "Vikram"})
        self.assertEqual(first.code, "SUB-000001")
        self.assertEqual(second.code, "SUB-000002")
        self.assertEqual(first.join_date, date(2024, 1, 31))
        self.assertEqual(first.balance, Decimal("0.00"))

    def test_opening_balance_is_booked_as_charge(self):
        subscriber = self.service.register_subscriber({"name": "Asha", "mobile": "9000000001"}, opening_balance="200")
        self.assertEqual(subscriber.balance, Decimal("200.00"))
        txn = Transaction.objects.get(subscriber=subscriber)
        self.assertEqual((txn.type, txn.amount, txn.description), ("charge", Decimal("200.00"), "Opening balance"))

    def test_opening_credit_is_booked_as_payment(self):
        subscriber = self.service.register_subscriber({"name": "Asha"}, opening_balance=-50)
        self.assertEqual(subscriber.balance, Decimal("-50.00"))
        self.assertEqual(Transaction.objects.get(subscriber=subscriber).type, "payment")

    def test_name_is_required(self):
        with self.assertRaises(ValidationError):
            self.service.register_subscriber({"name": "  "})
        self.assertFalse(Subscriber.objects.exists())

    def test_balance_cannot_be_set_directly(self):
        with self.assertRaises(ValidationError):
            self.service.register_subscriber({"name": "Asha", "balance": "100"})

    @override_settings(BILLING_DEFAULT_CYCLE="quarterly")
    def test_default_billing_cycle_from_settings(self):
        subscriber = self.service.register_subscriber({"name": "Asha"})
        self.assertEqual(subscriber.billing_cycle, "quarterly")

    def test_invalid_billing_cycle(self):
        with self.assertRaises(ValidationError):
            self.service.register_subscriber({"name": "Asha", "billing_cycle": "weekly"})


class SubscriberProfileTestCase(TestCase):
    def setUp(self):
        self.clock = fixed_clock(2024, 1, 31)
        self.service = SubscriberService(self.clock)
        self.subscriber = create_subscriber()

    def test_update_profile(self):
        updated = SubscriberService.update_profile(
            self.subscriber.pk, {"mobile": "9111111111", "latitude": Decimal("12.971599")}
        )
        self.assertEqual(updated.mobile, "9111111111")
        self.subscriber.refresh_from_db()
        self.assertEqual(self.subscriber.latitude, Decimal("12.971599"))

    def test_profile_cannot_touch_billing_fields(self):
        for field in ("balance", "current_pack", "next_billing_date"):
            with self.assertRaises(ValidationError):
                SubscriberService.update_profile(self.subscriber.pk, {field: "x"})

    def test_out_of_range_coordinates_rejected(self):
        with self.assertRaises(ValidationError):
            SubscriberService.update_profile(self.subscriber.pk, {"latitude": Decimal("91")})

    def test_enabling_auto_billing_schedules_first_charge(self):
        subscriber = self.service.configure_auto_billing(self.subscriber.pk, "monthly", True)
        self.assertTrue(subscriber.auto_charge_enabled)
        # 31 January plus one month clamps to the end of February
        self.assertEqual(subscriber.next_billing_date, date(2024, 2, 29))

    def test_explicit_billing_date_wins(self):
        subscriber = self.service.configure_auto_billing(
            self.subscriber.pk, "quarterly", True, next_billing_date=date(2024, 3, 15)
        )
        self.assertEqual(subscriber.next_billing_date, date(2024, 3, 15))
        self.assertEqual(subscriber.billing_cycle, "quarterly")

    def test_disabling_keeps_the_date(self):
        self.service.configure_auto_billing(self.subscriber.pk, "monthly", True)
        subscriber = self.service.configure_auto_billing(self.subscriber.pk, "monthly", False)
        self.assertFalse(subscriber.auto_charge_enabled)
        self.assertEqual(subscriber.next_billing_date, date(2024, 2, 29))

    def test_unknown_subscriber(self):
        with self.assertRaises(NotFoundError):
            SubscriberService.get_subscriber(uuid.uuid4())


class SubscriberDeletionTestCase(TestCase):
    """Deleting a subscriber removes everything that hangs off it"""

    def test_delete_cascades_and_releases_boxes(self):
        clock = fixed_clock()
        create_pack("HD Premium", "500.00")
        subscriber = create_subscriber()
        other = create_subscriber(name="Someone Else")

        SubscriptionLedgerService(clock).add_subscription(subscriber.pk, "HD Premium", 3)
        ComplaintService(clock).open_complaint(subscriber.pk, "No signal")
        stb = StbInventoryService.add_stb("STB-1001")
        StbInventoryService.assign(stb.pk, subscriber.pk)
        BillingHistoryEntry.objects.create(
            subscriber=subscriber, billing_cycle="monthly", amount=0, generated_at=clock.now(), status="charged"
        )
        ComplaintService(clock).open_complaint(other.pk, "Remote broken")

        SubscriberService.delete_subscriber(subscriber.pk)

        self.assertFalse(Subscriber.objects.filter(pk=subscriber.pk).exists())
        self.assertFalse(Transaction.objects.filter(subscriber_id=subscriber.pk).exists())
        self.assertFalse(SubscriptionEntry.objects.filter(subscriber_id=subscriber.pk).exists())
        self.assertFalse(BillingHistoryEntry.objects.filter(subscriber_id=subscriber.pk).exists())
        self.assertEqual(Complaint.objects.count(), 1)
        stb.refresh_from_db()
        self.assertEqual(stb.status, "available")
        self.assertIsNone(stb.subscriber)

    def test_delete_unknown_subscriber(self):
        with self.assertRaises(NotFoundError):
            SubscriberService.delete_subscriber(uuid.uuid4())
