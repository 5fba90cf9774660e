from decimal import Decimal

from django.contrib import admin
from django.contrib.auth.models import User
from django.test import RequestFactory, TestCase

from core.payments.constants import PaymentMethod
from donations.admin import DonationAdmin
from donations.models import Donation, DonationStatus

from .fakes import make_project


class DonationAdminTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.project = make_project()
        cls.superuser = User.objects.create_superuser(username="root", password="rootpass", email="root@example.com")
        cls.donation = Donation.objects.create(
            project=cls.project,
            amount=Decimal("40.00"),
            currency="USD",
            payment_method=PaymentMethod.STRIPE,
            payment_id="cs_test_admin",
            status=DonationStatus.COMPLETED,
        )

    def setUp(self):
        self.model_admin = DonationAdmin(Donation, admin.site)
        self.request = RequestFactory().get("/admin/donations/donation/")
        self.request.user = self.superuser

    def test_amount_project_and_currency_are_locked_on_existing_donations(self):
        readonly = self.model_admin.get_readonly_fields(self.request, self.donation)
        for field in ("amount", "project", "currency", "status"):
            with self.subTest(field=field):
                self.assertIn(field, readonly)

    def test_donations_cannot_be_added_or_deleted(self):
        self.assertFalse(self.model_admin.has_add_permission(self.request))
        self.assertFalse(self.model_admin.has_delete_permission(self.request, self.donation))

    def test_change_form_has_no_editable_amount(self):
        form = self.model_admin.get_form(self.request, self.donation)
        self.assertNotIn("amount", form.base_fields)
        self.assertNotIn("project", form.base_fields)
        self.assertIn("donor", form.base_fields)
