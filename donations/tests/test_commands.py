from decimal import Decimal
from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.test import TestCase

from core.payments.constants import PaymentMethod, PaymentStatus
from donations.models import Donation, DonationStatus

from .fakes import fake_providers, make_project


class ReconcileDonationsCommandTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.project = make_project()

    def setUp(self):
        self.providers = fake_providers()
        self.providers[PaymentMethod.MYFATOORAH].remote_status = PaymentStatus.COMPLETED
        patcher = mock.patch("core.payments.registry.get_providers", return_value=self.providers)
        patcher.start()
        self.addCleanup(patcher.stop)

        self.pending = Donation.objects.create(
            project=self.project,
            amount=Decimal("25.00"),
            currency="KWD",
            payment_method=PaymentMethod.MYFATOORAH,
            payment_id="8001",
        )
        self.completed = Donation.objects.create(
            project=self.project,
            amount=Decimal("10.00"),
            currency="KWD",
            payment_method=PaymentMethod.MYFATOORAH,
            payment_id="8002",
            status=DonationStatus.COMPLETED,
        )

    def run_command(self, *args):
        out = StringIO()
        call_command("reconcile_donations", "--older-than", "0", *args, stdout=out)
        return out.getvalue()

    def test_applies_provider_status(self):
        output = self.run_command("--verbose")

        self.pending.refresh_from_db()
        self.assertEqual(self.pending.status, DonationStatus.COMPLETED)
        self.assertEqual(self.providers[PaymentMethod.MYFATOORAH].status_queries, ["8001"])
        self.assertIn("Checked 1 donation(s), updated 1", output)
        self.project.refresh_from_db()
        self.assertEqual(self.project.current_amount, Decimal("25.00"))

    def test_dry_run_changes_nothing(self):
        output = self.run_command("--dry-run")

        self.pending.refresh_from_db()
        self.assertEqual(self.pending.status, DonationStatus.PENDING)
        self.assertIn("[DRY RUN]", output)

    def test_recent_donations_are_skipped(self):
        out = StringIO()
        call_command("reconcile_donations", "--older-than", "60", stdout=out)
        self.assertIn("Checked 0 donation(s)", out.getvalue())
        self.assertEqual(self.providers[PaymentMethod.MYFATOORAH].status_queries, [])
