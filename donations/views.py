"""
Donation and Payment API Views

Endpoints
---------

1. DonationCreateView
   - URL: /api/donations/
   - Method: POST
   - Body: {"project_id": 1, "amount": "50.00", "currency": "USD", "payment_method": "stripe"}
   - Purpose:
       Creates a pending donation and returns the provider's hosted payment url.

2. DonationReconcileView
   - URL: /api/donations/<uuid>/reconcile/
   - Method: POST
   - Auth: Admin
   - Purpose:
       Re-queries the provider and applies the reported status.

3. MyFatoorahWebhookView / StripeWebhookView
   - URL: /api/payments/myfatoorah/webhook/, /api/payments/stripe/webhook/
   - Method: POST
   - Auth: None (provider signatures)
   - Purpose:
       Provider notifications. Any error answers non-2xx so the provider
       re-delivers.

4. PaymentSuccessView / PaymentCancelView
   - URL: /api/payments/<method>/success/<uuid>/, /api/payments/<method>/cancel/<uuid>/
   - Method: GET
   - Purpose:
       Browser redirects after the hosted payment page. Success is read
       only; cancel marks the donation failed.

5. PaymentStatusView
   - URL: /api/payments/<method>/status/<provider_id>/
   - Method: GET
   - Auth: Admin
   - Purpose:
       Raw provider view of a payment.

Errors are rendered by core.exception_handler.payment_exception_handler.

Author: Charity Platform Team
Version: 1.0.0
"""

import logging

from rest_framework import status
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import CheckoutSerializer, DonationCreateSerializer, OutcomeSerializer
from .services import (
    create_donation,
    get_payment_status,
    handle_cancel_callback,
    handle_myfatoorah_webhook,
    handle_stripe_webhook,
    handle_success_callback,
    reconcile_donation,
)

logger = logging.getLogger(__name__)


class DonationCreateView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = DonationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        checkout = create_donation(**serializer.validated_data)
        return Response(CheckoutSerializer(checkout.to_dict()).data, status=status.HTTP_201_CREATED)


class DonationReconcileView(APIView):
    permission_classes = [IsAdminUser]

    def post(self, request, donation_id):
        outcome = reconcile_donation(donation_id)
        return Response(OutcomeSerializer(outcome.to_dict()).data, status=status.HTTP_200_OK)


class WebhookView(APIView):
    """
    Base for provider webhooks.

    Reads the raw body (signatures are computed over the exact bytes) and
    skips authentication, since providers cannot send JWTs.
    """

    authentication_classes = []
    permission_classes = [AllowAny]

    def acknowledge(self, outcome):
        data = {"received": True}
        if outcome is not None:
            data.update(outcome.to_dict())
        return Response(data, status=status.HTTP_200_OK)


class MyFatoorahWebhookView(WebhookView):
    def post(self, request):
        outcome = handle_myfatoorah_webhook(
            request.body,
            signature=request.headers.get("X-MyFatoorah-Signature"),
        )
        return self.acknowledge(outcome)


class StripeWebhookView(WebhookView):
    def post(self, request):
        outcome = handle_stripe_webhook(
            request.body,
            signature_header=request.headers.get("Stripe-Signature"),
        )
        return self.acknowledge(outcome)


class PaymentSuccessView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, payment_method, donation_id):
        donation = handle_success_callback(donation_id, payment_method)
        return Response({"donation_id": str(donation.pk), "status": donation.status})


class PaymentCancelView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, payment_method, donation_id):
        outcome = handle_cancel_callback(donation_id, payment_method)
        return Response({"donation_id": outcome.donation_id, "status": outcome.status})


class PaymentStatusView(APIView):
    permission_classes = [IsAdminUser]

    def get(self, request, payment_method, provider_id):
        result = get_payment_status(payment_method, provider_id)
        return Response(result.to_dict())
