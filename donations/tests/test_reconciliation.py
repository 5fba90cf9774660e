import uuid
from decimal import Decimal
from unittest import mock

from django.test import SimpleTestCase, TestCase, override_settings

from core.payments.constants import PaymentMethod, PaymentStatus
from donations.exceptions import ConcurrencyConflict, DonationNotFound
from donations.models import Donation, DonationStatus
from donations.services import ReconciliationEngine, retry_on_conflict, to_donation_status

from .fakes import make_project


class ReconciliationTestMixin:
    @classmethod
    def setUpTestData(cls):
        cls.project = make_project()

    def make_donation(self, amount="50.00", payment_id="cs_test_1", status=DonationStatus.PENDING):
        return Donation.objects.create(
            project=self.project,
            amount=Decimal(amount),
            currency="USD",
            payment_method=PaymentMethod.STRIPE,
            payment_id=payment_id,
            status=status,
        )

    def assertAggregates(self, amount, count):
        self.project.refresh_from_db()
        self.assertEqual(self.project.current_amount, Decimal(amount))
        self.assertEqual(self.project.donation_count, count)


class ApplyStatusTests(ReconciliationTestMixin, TestCase):
    def setUp(self):
        self.engine = ReconciliationEngine()

    def test_completion_updates_donation_and_project(self):
        donation = self.make_donation()

        outcome = self.engine.apply_status(donation.pk, DonationStatus.COMPLETED)

        self.assertTrue(outcome.applied)
        self.assertTrue(outcome.aggregate_updated)
        self.assertEqual(outcome.previous_status, "pending")
        self.assertEqual(outcome.status, "completed")
        donation.refresh_from_db()
        self.assertEqual(donation.status, DonationStatus.COMPLETED)
        self.assertIsNotNone(donation.paid_at)
        self.assertAggregates("50.00", 1)

    def test_duplicate_completion_is_counted_once(self):
        donation = self.make_donation()
        self.engine.apply_status(donation.pk, DonationStatus.COMPLETED)
        donation.refresh_from_db()
        paid_at = donation.paid_at

        outcome = self.engine.apply_status(donation.pk, DonationStatus.COMPLETED)

        self.assertFalse(outcome.applied)
        donation.refresh_from_db()
        self.assertEqual(donation.paid_at, paid_at)
        self.assertAggregates("50.00", 1)

    def test_non_completed_statuses_leave_aggregates_alone(self):
        for index, target in enumerate(
            [DonationStatus.PROCESSING, DonationStatus.FAILED, DonationStatus.CANCELLED]
        ):
            with self.subTest(target=target):
                donation = self.make_donation(payment_id=f"cs_test_{index}")
                outcome = self.engine.apply_status(donation.pk, target)
                self.assertTrue(outcome.applied)
                self.assertFalse(outcome.aggregate_updated)
        self.assertAggregates("0.00", 0)

    def test_processing_then_completed(self):
        donation = self.make_donation(amount="12.34")
        self.engine.apply_status(donation.pk, DonationStatus.PROCESSING)
        self.engine.apply_status(donation.pk, DonationStatus.COMPLETED)
        self.assertAggregates("12.34", 1)

    def test_processing_does_not_move_back_to_pending(self):
        donation = self.make_donation(status=DonationStatus.PROCESSING)
        outcome = self.engine.apply_status(donation.pk, DonationStatus.PENDING)
        self.assertFalse(outcome.applied)
        donation.refresh_from_db()
        self.assertEqual(donation.status, DonationStatus.PROCESSING)

    def test_terminal_states_are_sticky(self):
        donation = self.make_donation()
        self.engine.apply_status(donation.pk, DonationStatus.FAILED)

        with self.assertLogs("donations.services.reconciliation", level="WARNING"):
            outcome = self.engine.apply_status(donation.pk, DonationStatus.COMPLETED)

        self.assertFalse(outcome.applied)
        self.assertEqual(outcome.status, "failed")
        donation.refresh_from_db()
        self.assertEqual(donation.status, DonationStatus.FAILED)
        self.assertIsNone(donation.paid_at)
        self.assertAggregates("0.00", 0)

    def test_completed_is_not_failed_afterwards(self):
        donation = self.make_donation()
        self.engine.apply_status(donation.pk, DonationStatus.COMPLETED)
        self.engine.apply_status(donation.pk, DonationStatus.FAILED)
        donation.refresh_from_db()
        self.assertEqual(donation.status, DonationStatus.COMPLETED)
        self.assertAggregates("50.00", 1)

    def test_unknown_donation(self):
        with self.assertRaises(DonationNotFound):
            self.engine.apply_status(uuid.uuid4(), DonationStatus.COMPLETED)
        with self.assertRaises(DonationNotFound):
            self.engine.apply_status("not-a-uuid", DonationStatus.COMPLETED)

    def test_apply_provider_status_looks_up_payment_id(self):
        donation = self.make_donation(payment_id="cs_test_lookup")
        outcome = self.engine.apply_provider_status(
            PaymentMethod.STRIPE, "cs_test_lookup", PaymentStatus.COMPLETED
        )
        self.assertEqual(outcome.donation_id, str(donation.pk))
        self.assertAggregates("50.00", 1)

    def test_payment_id_is_scoped_to_payment_method(self):
        self.make_donation(payment_id="12345")
        with self.assertRaises(DonationNotFound):
            self.engine.apply_provider_status(PaymentMethod.MYFATOORAH, "12345", PaymentStatus.COMPLETED)


class ConcurrencyTests(ReconciliationTestMixin, TestCase):
    def test_lost_compare_and_set_is_retried(self):
        donation = self.make_donation()
        real_write = ReconciliationEngine._write_status
        calls = []

        def flaky_write(engine, donation, expected, updates):
            calls.append(expected)
            if len(calls) == 1:
                return 0
            return real_write(engine, donation, expected, updates)

        with mock.patch("donations.services.reconciliation.sleep"), mock.patch.object(
            ReconciliationEngine, "_write_status", autospec=True, side_effect=flaky_write
        ):
            outcome = ReconciliationEngine().apply_status(donation.pk, DonationStatus.COMPLETED)

        self.assertEqual(len(calls), 2)
        self.assertTrue(outcome.applied)
        self.assertAggregates("50.00", 1)

    @override_settings(RECONCILIATION_MAX_RETRIES=2)
    def test_persistent_conflict_is_raised(self):
        donation = self.make_donation()
        with mock.patch("donations.services.reconciliation.sleep"), mock.patch.object(
            ReconciliationEngine, "_write_status", return_value=0
        ) as write:
            with self.assertRaises(ConcurrencyConflict):
                ReconciliationEngine().apply_status(donation.pk, DonationStatus.COMPLETED)

        self.assertEqual(write.call_count, 3)
        donation.refresh_from_db()
        self.assertEqual(donation.status, DonationStatus.PENDING)
        self.assertAggregates("0.00", 0)


class RetryOnConflictTests(SimpleTestCase):
    def test_retries_until_success(self):
        attempts = []

        @retry_on_conflict(max_retries=3, base_delay=0)
        def step():
            attempts.append(1)
            if len(attempts) < 3:
                raise ConcurrencyConflict()
            return "done"

        self.assertEqual(step(), "done")
        self.assertEqual(len(attempts), 3)

    def test_other_errors_are_not_retried(self):
        attempts = []

        @retry_on_conflict(max_retries=3, base_delay=0)
        def step():
            attempts.append(1)
            raise DonationNotFound()

        with self.assertRaises(DonationNotFound):
            step()
        self.assertEqual(len(attempts), 1)


class ToDonationStatusTests(SimpleTestCase):
    def test_mapping(self):
        self.assertEqual(to_donation_status(PaymentStatus.PENDING), DonationStatus.PENDING)
        self.assertEqual(to_donation_status(PaymentStatus.PROCESSING), DonationStatus.PROCESSING)
        self.assertEqual(to_donation_status(PaymentStatus.COMPLETED), DonationStatus.COMPLETED)
        self.assertEqual(to_donation_status(PaymentStatus.FAILED), DonationStatus.FAILED)
        self.assertEqual(to_donation_status("bogus"), DonationStatus.FAILED)
