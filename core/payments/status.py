"""
Provider Status Mapping Tables

Translates each provider's status vocabulary into the canonical
PaymentStatus set (pending, processing, completed, failed). These tables are
the only place where a provider status string is interpreted; providers,
webhook handlers and the reconciliation engine all go through them.

Every function here is pure and total: any input, including None, unknown
strings or non-string values, maps to exactly one canonical status.
Unrecognised values map to FAILED.

Author: Charity Platform Team
Version: 1.0.0
"""

from typing import Any, Dict, Mapping, Optional

from .constants import PaymentStatus


# --- MyFatoorah (invoice status) ---

MYFATOORAH_STATUS_TABLE: Dict[str, PaymentStatus] = {
    "paid": PaymentStatus.COMPLETED,
    "pending": PaymentStatus.PENDING,
    "failed": PaymentStatus.FAILED,
    "expired": PaymentStatus.FAILED,
    "canceled": PaymentStatus.FAILED,
    "cancelled": PaymentStatus.FAILED,
}

# Numeric InvoiceStatus codes sent by older API versions.
MYFATOORAH_INVOICE_CODE_TABLE: Dict[int, PaymentStatus] = {
    0: PaymentStatus.PENDING,
    1: PaymentStatus.FAILED,
    2: PaymentStatus.COMPLETED,
    3: PaymentStatus.PENDING,
    4: PaymentStatus.COMPLETED,
    5: PaymentStatus.FAILED,
}

# --- MyFatoorah (transaction status, TransactionsStatusChanged events) ---

MYFATOORAH_TRANSACTION_STATUS_TABLE: Dict[str, PaymentStatus] = {
    "success": PaymentStatus.COMPLETED,
    "succss": PaymentStatus.COMPLETED,
    "captured": PaymentStatus.COMPLETED,
    "paid": PaymentStatus.COMPLETED,
    "approved": PaymentStatus.COMPLETED,
    "inprogress": PaymentStatus.PENDING,
    "authorize": PaymentStatus.PENDING,
    "authorized": PaymentStatus.PENDING,
    "authorised": PaymentStatus.PENDING,
    "failed": PaymentStatus.FAILED,
    "declined": PaymentStatus.FAILED,
    "void": PaymentStatus.FAILED,
    "canceled": PaymentStatus.FAILED,
    "cancelled": PaymentStatus.FAILED,
}

# --- Stripe (checkout session / payment status) ---

STRIPE_STATUS_TABLE: Dict[str, PaymentStatus] = {
    "open": PaymentStatus.PENDING,
    "created": PaymentStatus.PENDING,
    "processing": PaymentStatus.PROCESSING,
    "paid": PaymentStatus.COMPLETED,
    "complete": PaymentStatus.COMPLETED,
}

STRIPE_SESSION_COMPLETED = "checkout.session.completed"
STRIPE_ASYNC_PAYMENT_SUCCEEDED = "checkout.session.async_payment_succeeded"
STRIPE_ASYNC_PAYMENT_FAILED = "checkout.session.async_payment_failed"
STRIPE_SESSION_EXPIRED = "checkout.session.expired"

STRIPE_HANDLED_EVENTS = frozenset(
    {
        STRIPE_SESSION_COMPLETED,
        STRIPE_ASYNC_PAYMENT_SUCCEEDED,
        STRIPE_ASYNC_PAYMENT_FAILED,
        STRIPE_SESSION_EXPIRED,
    }
)


def _normalize(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip().casefold() or None


def _lookup(table: Mapping[str, PaymentStatus], value: Any) -> PaymentStatus:
    key = _normalize(value)
    if key is None:
        return PaymentStatus.FAILED
    return table.get(key, PaymentStatus.FAILED)


def map_myfatoorah_status(value: Any) -> PaymentStatus:
    """
    Map a MyFatoorah InvoiceStatus to the canonical status.

    Paid -> completed, Pending -> pending, Failed/Expired/Canceled -> failed,
    anything else -> failed. Comparison ignores case and surrounding spaces.
    Integer codes are accepted too (2/4 paid, 1/5 cancelled, 0/3 pending).
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return MYFATOORAH_INVOICE_CODE_TABLE.get(value, PaymentStatus.FAILED)
    return _lookup(MYFATOORAH_STATUS_TABLE, value)


def map_myfatoorah_transaction_status(value: Any) -> PaymentStatus:
    """
    Map a MyFatoorah TransactionStatus to the canonical status.

    SUCCESS/CAPTURED/PAID/APPROVED -> completed, InProgress/Authorize ->
    pending, Failed/Declined/Void/Canceled -> failed, anything else -> failed.
    """
    return _lookup(MYFATOORAH_TRANSACTION_STATUS_TABLE, value)


def _present(value: Any) -> bool:
    return value is not None and value != ""


def myfatoorah_event_status(data: Mapping[str, Any]) -> PaymentStatus:
    """
    Derive the canonical status of a MyFatoorah notification.

    A successful TransactionStatus wins. Otherwise InvoiceStatus decides
    when present, and TransactionStatus when it is the only field sent.

    Args:
        data: The webhook's Data object (or the flat payload)
    """
    transaction = data.get("TransactionStatus")
    if _present(transaction):
        status = map_myfatoorah_transaction_status(transaction)
        if status == PaymentStatus.COMPLETED:
            return status
    invoice = data.get("InvoiceStatus")
    if _present(invoice):
        return map_myfatoorah_status(invoice)
    return map_myfatoorah_transaction_status(transaction)


def map_stripe_status(value: Any) -> PaymentStatus:
    """
    Map a Stripe Checkout Session status (or derived event status).

    open/created -> pending, processing -> processing,
    paid/complete -> completed, anything else -> failed.
    """
    return _lookup(STRIPE_STATUS_TABLE, value)


def stripe_event_status(event_type: Any, session: Mapping[str, Any]) -> str:
    """
    Derive the raw Stripe status string carried by a checkout.session event.

    A completed session whose payment is still "unpaid" (delayed payment
    methods such as bank debits) is reported as "processing" until the
    async_payment_succeeded / async_payment_failed event arrives.

    Args:
        event_type: Stripe event type, e.g. "checkout.session.completed"
        session: The event's data.object

    Returns:
        A status string from Stripe's vocabulary, suitable for map_stripe_status
    """
    if event_type == STRIPE_ASYNC_PAYMENT_FAILED:
        return "failed"
    if event_type == STRIPE_SESSION_EXPIRED:
        return "expired"
    if event_type == STRIPE_ASYNC_PAYMENT_SUCCEEDED:
        return "paid"
    if event_type == STRIPE_SESSION_COMPLETED and session.get("payment_status") == "unpaid":
        return "processing"
    return str(session.get("status") or "")
