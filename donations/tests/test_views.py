import json
from decimal import Decimal
from unittest import mock

from django.contrib.auth.models import User
from rest_framework import status
from rest_framework.test import APITestCase

from core.payments.constants import PaymentMethod, PaymentStatus
from donations.models import Donation, DonationStatus

from .fakes import (
    fake_providers,
    make_project,
    myfatoorah_signature,
    stripe_event,
    stripe_signature_header,
)

MF_SECRET = "mf-secret"
STRIPE_SECRET = "whsec_test_secret"


class DonationApiTestCase(APITestCase):
    @classmethod
    def setUpTestData(cls):
        cls.project = make_project()
        cls.admin = User.objects.create_user(username="admin", password="adminpass", is_staff=True)

    def setUp(self):
        self.providers = fake_providers(myfatoorah_secret=MF_SECRET, stripe_secret=STRIPE_SECRET)
        patcher = mock.patch("core.payments.registry.get_providers", return_value=self.providers)
        patcher.start()
        self.addCleanup(patcher.stop)

    def make_donation(self, method=PaymentMethod.STRIPE, payment_id="cs_test_abc", **kwargs):
        return Donation.objects.create(
            project=self.project,
            amount=Decimal("50.00"),
            currency="USD",
            payment_method=method,
            payment_id=payment_id,
            **kwargs,
        )


class DonationCreateViewTests(DonationApiTestCase):
    url = "/api/donations/"

    def test_create_donation(self):
        response = self.client.post(
            self.url,
            {"project_id": self.project.pk, "amount": "50.00", "currency": "usd", "payment_method": "stripe"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        body = response.json()
        self.assertTrue(body["payment_url"].startswith("https://pay.example.com/"))
        donation = Donation.objects.get(pk=body["donation_id"])
        self.assertEqual(donation.status, DonationStatus.PENDING)
        self.assertEqual(donation.currency, "USD")

    def test_invalid_payload(self):
        response = self.client.post(
            self.url,
            {"project_id": self.project.pk, "amount": "-1", "currency": "US", "payment_method": "paypal"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("amount", response.json())
        self.assertIn("payment_method", response.json())
        self.assertFalse(Donation.objects.exists())

    def test_inactive_project(self):
        project = make_project(slug="paused", title="Paused", is_donation_active=False)
        response = self.client.post(
            self.url,
            {"project_id": project.pk, "amount": "5.00", "payment_method": "myfatoorah"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_412_PRECONDITION_FAILED)
        self.assertEqual(response.json()["error_code"], "PreconditionFailed")

    def test_unknown_project(self):
        response = self.client.post(
            self.url, {"project_id": 424242, "amount": "5.00", "payment_method": "stripe"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_gateway_failure(self):
        self.providers[PaymentMethod.STRIPE].fail = True
        response = self.client.post(
            self.url,
            {"project_id": self.project.pk, "amount": "5.00", "payment_method": "stripe"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(response.json()["error_code"], "PaymentGatewayError")
        self.assertFalse(Donation.objects.exists())


class WebhookViewTests(DonationApiTestCase):
    def test_stripe_webhook(self):
        donation = self.make_donation()
        payload = stripe_event("checkout.session.completed", "cs_test_abc")

        response = self.client.post(
            "/api/payments/stripe/webhook/",
            data=payload,
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE=stripe_signature_header(payload, STRIPE_SECRET),
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.json()["received"])
        donation.refresh_from_db()
        self.assertEqual(donation.status, DonationStatus.COMPLETED)
        self.project.refresh_from_db()
        self.assertEqual(self.project.donation_count, 1)

    def test_stripe_webhook_bad_signature(self):
        self.make_donation()
        payload = stripe_event("checkout.session.completed", "cs_test_abc")
        response = self.client.post(
            "/api/payments/stripe/webhook/",
            data=payload,
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE="t=1,v1=deadbeef",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()["error_code"], "InvalidSignature")

    def test_stripe_webhook_ignores_other_events(self):
        payload = json.dumps({"id": "evt_1", "type": "customer.created", "data": {"object": {"id": "cus_1"}}})
        response = self.client.post(
            "/api/payments/stripe/webhook/",
            data=payload,
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE=stripe_signature_header(payload, STRIPE_SECRET),
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json(), {"received": True})

    def test_myfatoorah_webhook(self):
        donation = self.make_donation(PaymentMethod.MYFATOORAH, "5555")
        body = json.dumps({"Data": {"InvoiceId": 5555, "InvoiceStatus": "Paid"}}).encode()

        response = self.client.post(
            "/api/payments/myfatoorah/webhook/",
            data=body,
            content_type="application/json",
            HTTP_X_MYFATOORAH_SIGNATURE=myfatoorah_signature(body, MF_SECRET),
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["status"], "completed")
        donation.refresh_from_db()
        self.assertEqual(donation.status, DonationStatus.COMPLETED)

    def test_myfatoorah_webhook_bad_signature(self):
        donation = self.make_donation(PaymentMethod.MYFATOORAH, "5555")
        body = json.dumps({"InvoiceId": 5555, "InvoiceStatus": "Paid"}).encode()
        response = self.client.post(
            "/api/payments/myfatoorah/webhook/",
            data=body,
            content_type="application/json",
            HTTP_X_MYFATOORAH_SIGNATURE="0" * 64,
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        donation.refresh_from_db()
        self.assertEqual(donation.status, DonationStatus.PENDING)

    def test_myfatoorah_webhook_unknown_invoice(self):
        body = json.dumps({"InvoiceId": 1, "InvoiceStatus": "Paid"}).encode()
        response = self.client.post(
            "/api/payments/myfatoorah/webhook/", data=body, content_type="application/json"
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.json()["error_code"], "DonationNotFound")


class CallbackViewTests(DonationApiTestCase):
    def test_success_callback(self):
        donation = self.make_donation()
        response = self.client.get(f"/api/payments/stripe/success/{donation.pk}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json(), {"donation_id": str(donation.pk), "status": "pending"})

    def test_cancel_callback(self):
        donation = self.make_donation()
        response = self.client.get(f"/api/payments/stripe/cancel/{donation.pk}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["status"], "failed")
        donation.refresh_from_db()
        self.assertEqual(donation.status, DonationStatus.FAILED)

    def test_callback_for_wrong_method(self):
        donation = self.make_donation()
        response = self.client.get(f"/api/payments/myfatoorah/success/{donation.pk}/")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class AdminEndpointTests(DonationApiTestCase):
    def test_reconcile_requires_admin(self):
        donation = self.make_donation()
        response = self.client.post(f"/api/donations/{donation.pk}/reconcile/")
        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    def test_reconcile(self):
        donation = self.make_donation()
        self.providers[PaymentMethod.STRIPE].remote_status = PaymentStatus.COMPLETED
        self.client.force_authenticate(user=self.admin)

        response = self.client.post(f"/api/donations/{donation.pk}/reconcile/")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["status"], "completed")
        self.assertTrue(response.json()["aggregate_updated"])

    def test_payment_status(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get("/api/payments/stripe/status/cs_test_xyz/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["id"], "cs_test_xyz")
        self.assertEqual(response.json()["status"], "pending")

    def test_payment_status_unknown_method(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get("/api/payments/paypal/status/abc/")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()["error_code"], "InvalidPaymentMethod")
