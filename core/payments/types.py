"""
Payment Value Types

Immutable request/result objects exchanged between the donation services and
the payment providers, plus the Decimal helpers used to convert amounts to
and from a provider's minor currency unit.

Author: Charity Platform Team
Version: 1.0.0
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Dict, Optional, Union

from .constants import PaymentStatus

TWO_PLACES = Decimal("0.01")
MINOR_UNIT_FACTOR = Decimal(100)


def to_decimal(value: Union[Decimal, int, str, float]) -> Decimal:
    """
    Convert an amount to a two-place Decimal.

    Floats are converted via their string form so 50.1 stays 50.10.

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
        if not amount.is_finite():
            raise ValueError(f"Invalid amount: {value!r}")
        return amount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Invalid amount: {value!r}") from e


def to_minor_units(amount: Union[Decimal, int, str]) -> int:
    """50.00 -> 5000. Half-up rounding on the cent."""
    return int((to_decimal(amount) * MINOR_UNIT_FACTOR).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def from_minor_units(value: Optional[int]) -> Optional[Decimal]:
    """5000 -> Decimal('50.00'). None passes through."""
    if value is None:
        return None
    return (Decimal(int(value)) / MINOR_UNIT_FACTOR).quantize(TWO_PLACES)


@dataclass(frozen=True)
class PaymentRequest:
    """
    Everything a provider needs to open a payment for one donation.

    Attributes:
        amount: Amount in major units (e.g. Decimal("50.00"))
        currency: ISO 4217 code, upper case
        donation_id: Donation primary key, echoed back by the provider
        project_title: Used for the line item / invoice description
    """

    amount: Decimal
    currency: str
    donation_id: str
    project_title: str
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None


@dataclass(frozen=True)
class PaymentResult:
    """
    Provider-independent view of a payment.

    ``id`` is the provider's payment id (MyFatoorah InvoiceId, Stripe Checkout
    Session id) and is what webhooks use to find the donation again.
    """

    id: str
    url: Optional[str]
    status: PaymentStatus
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "status": str(self.status),
            "amount": str(self.amount) if self.amount is not None else None,
            "currency": self.currency,
            "metadata": self.metadata,
        }
