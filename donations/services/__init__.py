"""
Donation services.

- creation: create_donation
- reconciliation: ReconciliationEngine, to_donation_status
- webhooks: provider webhooks, redirect callbacks, manual reconciliation
"""

from .creation import DonationCheckout, DonationDraft, create_donation
from .reconciliation import (
    ReconciliationEngine,
    ReconciliationOutcome,
    retry_on_conflict,
    to_donation_status,
)
from .webhooks import (
    get_payment_status,
    handle_cancel_callback,
    handle_myfatoorah_webhook,
    handle_stripe_webhook,
    handle_success_callback,
    reconcile_donation,
)

__all__ = [
    "DonationCheckout",
    "DonationDraft",
    "create_donation",
    "ReconciliationEngine",
    "ReconciliationOutcome",
    "retry_on_conflict",
    "to_donation_status",
    "get_payment_status",
    "handle_cancel_callback",
    "handle_myfatoorah_webhook",
    "handle_stripe_webhook",
    "handle_success_callback",
    "reconcile_donation",
]
