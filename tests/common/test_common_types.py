# ===============================================================================
# RESULT TYPES AND BUSINESS ERRORS
# ===============================================================================

from decimal import Decimal

from django.test import SimpleTestCase

from apps.common.types import (
    BusinessError,
    ConflictError,
    Err,
    NotFoundError,
    Ok,
    PartialBatchFailure,
    ValidationError,
)
from apps.common.validators import to_money, validate_choice, validate_financial_amount


class ResultTypeTestCase(SimpleTestCase):
    """Ok/Err behaviour"""

    def test_ok_unwraps_value(self):
        result = Ok(5)
        with self.assertRaises(ValueError):
            result.unwrap_err()
        self.assertTrue(result.is_ok())
        self.assertFalse(result.is_err())
        self.assertEqual(result.unwrap(), 5)

    def test_err_unwrap_raises(self):
        result = Err("boom")
        self.assertTrue(result.is_err())
        self.assertEqual(result.unwrap_err(), "boom")
        with self.assertRaises(ValueError):
            result.unwrap()


class BusinessErrorTestCase(SimpleTestCase):
    def test_error_hierarchy(self):
        for error in (NotFoundError("Pack", "Gold"), ConflictError("x"), ValidationError("f", "bad")):
            self.assertIsInstance(error, BusinessError)

    def test_messages_carry_context(self):
        self.assertEqual(str(NotFoundError("Pack", "Gold")), "Pack not found: Gold")
        error = ValidationError("amount", "must be positive")
        self.assertEqual(error.field, "amount")
        self.assertEqual(str(error), "amount: must be positive")

    def test_partial_batch_failure_counts(self):
        error = PartialBatchFailure([{"subscriber_id": "a", "reason": "x"}, {"subscriber_id": "b", "reason": "y"}])
        self.assertEqual(len(error.failures), 2)
        self.assertIn("2 item(s) failed", str(error))


class FinancialValidatorTestCase(SimpleTestCase):
    """Amount parsing and bounds"""

    def test_to_money_quantizes(self):
        self.assertEqual(to_money("10.005"), Decimal("10.01"))
        self.assertEqual(to_money(0.1), Decimal("0.10"))
        self.assertEqual(to_money(3), Decimal("3.00"))

    def test_to_money_rejects_garbage(self):
        for value in ("abc", None, "NaN", "Infinity"):
            with self.assertRaises(ValidationError):
                to_money(value)

    def test_validate_financial_amount_bounds(self):
        self.assertEqual(validate_financial_amount("250"), Decimal("250.00"))
        with self.assertRaises(ValidationError):
            validate_financial_amount(0)
        with self.assertRaises(ValidationError):
            validate_financial_amount(-5)
        with self.assertRaises(ValidationError):
            validate_financial_amount("10000000.01")
        self.assertEqual(validate_financial_amount(0, allow_zero=True), Decimal("0.00"))
        self.assertEqual(validate_financial_amount(-5, allow_negative=True), Decimal("-5.00"))

    def test_validate_choice(self):
        choices = (("charge", "Charge"), ("payment", "Payment"))
        self.assertEqual(validate_choice("charge", choices, "type"), "charge")
        with self.assertRaises(ValidationError) as ctx:
            validate_choice("gift", choices, "type")
        self.assertEqual(ctx.exception.field, "type")
