"""
Payment Webhooks and Callbacks

Entry points that turn provider notifications, browser redirects and manual
reconciliation requests into ReconciliationEngine calls.

Handled notifications:
- MyFatoorah webhook: flat payload or ``{Event, Data: {...}}`` envelope,
  keyed by InvoiceId, optional HMAC-SHA256 signature
- Stripe webhook: checkout.session.completed / async_payment_succeeded /
  async_payment_failed / expired, verified with the endpoint secret
- Cancel redirect: forces ``failed`` unless the donation is already terminal
- Success redirect: read only
- Manual reconciliation: re-queries the provider

Safety:
- Authenticity and parsing are checked before any database access.
- Errors propagate so the HTTP layer answers non-2xx and the provider
  re-delivers.

Author: Charity Platform Team
Version: 1.0.0
"""

import json
import logging
from typing import Any, Dict, Optional, Union

import stripe

from core.payments.constants import PaymentMethod
from core.payments.exceptions import InvalidSignature, MalformedEvent
from core.payments.registry import ProviderMap, get_provider
from core.payments.signatures import verify_hmac_signature
from core.payments.status import (
    STRIPE_HANDLED_EVENTS,
    myfatoorah_event_status,
    stripe_event_status,
)
from core.payments.types import PaymentResult

from ..exceptions import DonationNotFound, PreconditionFailed
from ..models import Donation, DonationStatus
from .reconciliation import (
    ReconciliationEngine,
    ReconciliationOutcome,
    parse_donation_id,
    to_donation_status,
)

logger = logging.getLogger(__name__)
security_logger = logging.getLogger("donations.security")

RawBody = Union[bytes, str]


def _load_json(raw_body: RawBody) -> Dict[str, Any]:
    try:
        if isinstance(raw_body, bytes):
            raw_body = raw_body.decode("utf-8")
        payload = json.loads(raw_body)
    except (UnicodeDecodeError, ValueError, TypeError) as e:
        raise MalformedEvent("Webhook body is not valid JSON") from e
    if not isinstance(payload, dict):
        raise MalformedEvent("Webhook body must be a JSON object")
    return payload


def handle_myfatoorah_webhook(
    raw_body: RawBody,
    signature: Optional[str] = None,
    providers: Optional[ProviderMap] = None,
    engine: Optional[ReconciliationEngine] = None,
) -> ReconciliationOutcome:
    """
    Apply a MyFatoorah payment notification.

    The signature is checked when a webhook secret is configured and the
    request carries one.

    Raises:
        InvalidSignature: Signature present but wrong
        MalformedEvent: Invalid JSON or no InvoiceId
        DonationNotFound: No donation for the InvoiceId
    """
    provider = get_provider(PaymentMethod.MYFATOORAH, providers)
    secret = getattr(provider, "webhook_secret", None)

    if secret and signature:
        if not verify_hmac_signature(raw_body, signature, secret):
            security_logger.warning("Rejected MyFatoorah webhook: signature mismatch")
            raise InvalidSignature()
    elif secret:
        logger.debug("MyFatoorah webhook received without signature header")

    payload = _load_json(raw_body)
    data = payload.get("Data") if isinstance(payload.get("Data"), dict) else payload

    invoice_id = data.get("InvoiceId")
    if invoice_id in (None, ""):
        raise MalformedEvent("MyFatoorah webhook is missing InvoiceId")

    status = myfatoorah_event_status(data)
    logger.info(
        f"MyFatoorah webhook for invoice {invoice_id}: "
        f"invoice={data.get('InvoiceStatus')} transaction={data.get('TransactionStatus')} -> {status}"
    )

    engine = engine or ReconciliationEngine()
    return engine.apply_provider_status(
        PaymentMethod.MYFATOORAH, invoice_id, status, source="myfatoorah_webhook"
    )


def handle_stripe_webhook(
    raw_body: RawBody,
    signature_header: Optional[str],
    providers: Optional[ProviderMap] = None,
    engine: Optional[ReconciliationEngine] = None,
) -> Optional[ReconciliationOutcome]:
    """
    Apply a Stripe checkout.session event.

    Returns None for event types that are acknowledged but not handled.

    Raises:
        InvalidSignature: Missing or invalid Stripe-Signature header
        MalformedEvent: Invalid JSON or no data.object.id
        DonationNotFound: No donation for the session id
    """
    provider = get_provider(PaymentMethod.STRIPE, providers)
    secret = getattr(provider, "webhook_secret", None)

    if secret:
        if not signature_header:
            security_logger.warning("Rejected Stripe webhook: missing Stripe-Signature header")
            raise InvalidSignature("Missing Stripe-Signature header")
        payload_text = raw_body.decode("utf-8", errors="replace") if isinstance(raw_body, bytes) else raw_body
        try:
            stripe.WebhookSignature.verify_header(payload_text, signature_header, secret)
        except stripe.SignatureVerificationError as e:
            security_logger.warning(f"Rejected Stripe webhook: {e}")
            raise InvalidSignature() from e

    event = _load_json(raw_body)
    event_type = event.get("type")
    if event_type not in STRIPE_HANDLED_EVENTS:
        logger.debug(f"Ignoring Stripe event {event.get('id')} of type {event_type}")
        return None

    data = event.get("data")
    session = data.get("object") if isinstance(data, dict) else None
    if not isinstance(session, dict) or not session.get("id"):
        raise MalformedEvent("Stripe event is missing data.object.id")

    raw_status = stripe_event_status(event_type, session)
    status = provider.map_status(raw_status)
    logger.info(f"Stripe {event_type} for session {session['id']}: {raw_status} -> {status}")

    engine = engine or ReconciliationEngine()
    return engine.apply_provider_status(
        PaymentMethod.STRIPE, session["id"], status, source="stripe_webhook"
    )


def _get_donation(donation_id: Any, payment_method: Any = None) -> Donation:
    pk = parse_donation_id(donation_id)
    queryset = Donation.objects.filter(pk=pk)
    if payment_method is not None:
        queryset = queryset.filter(payment_method=payment_method)
    donation = queryset.first()
    if donation is None:
        raise DonationNotFound(f"Donation {donation_id} not found", details={"donation_id": str(pk)})
    return donation


def handle_cancel_callback(
    donation_id: Any,
    payment_method: Any = None,
    engine: Optional[ReconciliationEngine] = None,
) -> ReconciliationOutcome:
    """The donor abandoned the hosted payment page. Marks the donation failed."""
    donation = _get_donation(donation_id, payment_method)
    engine = engine or ReconciliationEngine()
    return engine.apply_status(donation.pk, DonationStatus.FAILED, source="cancel_callback")


def handle_success_callback(donation_id: Any, payment_method: Any = None) -> Donation:
    """
    The donor returned from the hosted payment page.

    Read only: the webhook is authoritative for the final status.
    """
    return _get_donation(donation_id, payment_method)


def get_payment_status(
    payment_method: Any,
    provider_id: str,
    providers: Optional[ProviderMap] = None,
) -> PaymentResult:
    """Query a provider for one of its payments without touching the database."""
    provider = get_provider(payment_method, providers)
    return provider.get_payment_status(provider_id)


def reconcile_donation(
    donation_id: Any,
    providers: Optional[ProviderMap] = None,
    engine: Optional[ReconciliationEngine] = None,
) -> ReconciliationOutcome:
    """
    Re-query the provider for a donation and apply the reported status.

    Raises:
        DonationNotFound: Unknown donation
        PreconditionFailed: The donation has no provider payment id
        PaymentGatewayError: The provider could not be queried
    """
    donation = _get_donation(donation_id)
    engine = engine or ReconciliationEngine()

    if donation.is_terminal:
        return engine.apply_status(donation.pk, DonationStatus(donation.status), source="manual")
    if not donation.payment_id:
        raise PreconditionFailed(
            f"Donation {donation.pk} has no payment id to reconcile",
            details={"donation_id": str(donation.pk)},
        )

    result = get_payment_status(donation.payment_method, donation.payment_id, providers)
    logger.info(
        f"Provider reports {result.status} for donation {donation.pk} ({donation.payment_id})"
    )
    return engine.apply_status(donation.pk, to_donation_status(result.status), source="manual")
