"""
Stripe Checkout Payment Provider

Creates one-off Stripe Checkout Sessions for donations and reads them back
for manual reconciliation. The secret key is passed on every call
(``api_key=``) instead of being assigned to the module-global
``stripe.api_key``, so test and live keys never leak between providers.

Dependencies:
- stripe (official Python SDK)

Author: Charity Platform Team
Version: 1.0.0
"""

import logging
from typing import Any, Optional

import stripe

from ..constants import PaymentMethod, PaymentStatus
from ..exceptions import PaymentGatewayError
from ..status import map_stripe_status
from ..types import PaymentRequest, PaymentResult, from_minor_units, to_minor_units

logger = logging.getLogger(__name__)


def _get(obj: Any, key: str, default: Any = None) -> Any:
    # StripeObject supports .get(); plain dicts are used in tests
    if obj is None:
        return default
    getter = getattr(obj, "get", None)
    if callable(getter):
        return getter(key, default)
    return getattr(obj, key, default)


class StripeProvider:
    """
    Payment provider for Stripe Checkout.

    Attributes:
        api_key: Secret key (test or live, see STRIPE_LIVE_MODE)
        success_url: Success redirect prefix; the donation id is appended
        cancel_url: Cancel redirect prefix; the donation id is appended
        webhook_secret: Endpoint signing secret (whsec_...)
    """

    method = PaymentMethod.STRIPE

    def __init__(
        self,
        api_key: str,
        success_url: str = "",
        cancel_url: str = "",
        webhook_secret: Optional[str] = None,
    ) -> None:
        self.api_key = api_key
        self.success_url = (success_url or "").rstrip("/")
        self.cancel_url = (cancel_url or "").rstrip("/")
        self.webhook_secret = webhook_secret or None

    def create_payment(self, request: PaymentRequest) -> PaymentResult:
        params = dict(
            mode="payment",
            line_items=[
                {
                    "quantity": 1,
                    "price_data": {
                        "currency": request.currency.lower(),
                        "unit_amount": to_minor_units(request.amount),
                        "product_data": {
                            "name": f"Donation for {request.project_title}",
                        },
                    },
                }
            ],
            success_url=f"{self.success_url}/{request.donation_id}",
            cancel_url=f"{self.cancel_url}/{request.donation_id}",
            client_reference_id=request.donation_id,
            metadata={"donation_id": request.donation_id},
        )
        if request.customer_email:
            params["customer_email"] = request.customer_email

        try:
            session = stripe.checkout.Session.create(api_key=self.api_key, **params)
        except stripe.StripeError as e:
            logger.error(
                f"Stripe Checkout Session creation failed for donation {request.donation_id}: {e}"
            )
            raise PaymentGatewayError(
                getattr(e, "user_message", None) or str(e) or "Stripe request failed",
                provider=self.method.value,
            ) from e

        session_id = _get(session, "id")
        session_url = _get(session, "url")
        if not session_id or not session_url:
            raise PaymentGatewayError(
                "Stripe response is missing session id or url",
                provider=self.method.value,
            )

        logger.info(
            f"Stripe Checkout Session {session_id} created for donation {request.donation_id}"
        )
        return PaymentResult(
            id=session_id,
            url=session_url,
            status=PaymentStatus.PENDING,
            amount=request.amount,
            currency=request.currency.upper(),
            metadata={"session_status": _get(session, "status")},
        )

    def get_payment_status(self, provider_id: str) -> PaymentResult:
        try:
            session = stripe.checkout.Session.retrieve(provider_id, api_key=self.api_key)
        except stripe.StripeError as e:
            logger.error(f"Stripe Checkout Session {provider_id} lookup failed: {e}")
            raise PaymentGatewayError(
                str(e) or "Stripe request failed", provider=self.method.value
            ) from e

        metadata = {
            "session_status": _get(session, "status"),
            "payment_status": _get(session, "payment_status"),
        }
        payment_intent_id = _get(session, "payment_intent")
        if isinstance(payment_intent_id, str):
            try:
                intent = stripe.PaymentIntent.retrieve(payment_intent_id, api_key=self.api_key)
            except stripe.StripeError as e:
                logger.warning(f"PaymentIntent {payment_intent_id} lookup failed: {e}")
            else:
                metadata["payment_intent_status"] = _get(intent, "status")
            metadata["payment_intent"] = payment_intent_id

        # unpaid complete sessions still wait on a delayed payment method
        raw_status = _get(session, "status")
        if raw_status == "complete" and _get(session, "payment_status") == "unpaid":
            raw_status = "processing"

        currency = _get(session, "currency")
        return PaymentResult(
            id=_get(session, "id") or provider_id,
            url=_get(session, "url"),
            status=self.map_status(raw_status),
            amount=from_minor_units(_get(session, "amount_total")),
            currency=currency.upper() if isinstance(currency, str) else None,
            metadata=metadata,
        )

    def map_status(self, raw: Any) -> PaymentStatus:
        return map_stripe_status(raw)
