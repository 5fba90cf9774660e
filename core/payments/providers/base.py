"""
Payment provider contract.

A provider turns a PaymentRequest into a hosted payment page and can report
the status of a payment it created. Concrete providers live next to this
module and satisfy the contract structurally; the registry
(core.payments.registry) maps each PaymentMethod to one instance.
"""

from typing import Any, Optional, Protocol, runtime_checkable

from ..constants import PaymentMethod, PaymentStatus
from ..types import PaymentRequest, PaymentResult


@runtime_checkable
class PaymentProvider(Protocol):
    """Capability contract shared by all providers."""

    method: PaymentMethod
    webhook_secret: Optional[str]

    def create_payment(self, request: PaymentRequest) -> PaymentResult:
        """
        Open a payment with the remote gateway.

        Raises:
            PaymentGatewayError: Remote call failed, reported failure, or
                returned no payment id / url
        """
        ...

    def get_payment_status(self, provider_id: str) -> PaymentResult:
        """Re-query the gateway for a payment it created."""
        ...

    def map_status(self, raw: Any) -> PaymentStatus:
        """Translate the provider's raw status into the canonical set."""
        ...
