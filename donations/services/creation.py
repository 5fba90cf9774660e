"""
Donation Creation

Creates a pending donation and opens the matching provider payment in one
database transaction. If anything fails (unknown project, inactive project,
provider error) the transaction rolls back and no donation row remains.

Author: Charity Platform Team
Version: 1.0.0
"""

import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from django.conf import settings
from django.db import transaction

from core.payments.constants import PaymentMethod
from core.payments.exceptions import InvalidPaymentMethod, PaymentGatewayError
from core.payments.registry import ProviderMap, get_provider
from core.payments.types import PaymentRequest, to_decimal
from projects.models import Project

from ..exceptions import DonationValidationError, NotFoundError, PreconditionFailed
from ..models import Donation, DonationStatus, Donor

logger = logging.getLogger(__name__)

CURRENCY_RE = re.compile(r"^[A-Za-z]{3}$")
# Donation.amount is DecimalField(max_digits=12, decimal_places=2).
MAX_AMOUNT = Decimal("9999999999.99")


@dataclass(frozen=True)
class DonationDraft:
    """Validated, immutable input of a donation before it is persisted."""

    project_id: int
    amount: Decimal
    currency: str
    payment_method: PaymentMethod
    donor_id: Optional[int] = None

    @classmethod
    def build(
        cls,
        project_id: Any,
        amount: Any,
        currency: Optional[str],
        payment_method: Any,
        donor_id: Any = None,
    ) -> "DonationDraft":
        """
        Normalise and validate raw input.

        Raises:
            DonationValidationError: Bad amount or currency
            InvalidPaymentMethod: Unknown payment method
        """
        try:
            value = to_decimal(amount)
        except ValueError as e:
            raise DonationValidationError(str(e), details={"field": "amount"}) from e
        if value <= 0 or Decimal(str(amount)).as_tuple().exponent < -2:
            raise DonationValidationError(
                "Amount must be positive with at most two decimal places",
                details={"field": "amount"},
            )
        if value > MAX_AMOUNT:
            raise DonationValidationError(
                f"Amount must not exceed {MAX_AMOUNT}",
                details={"field": "amount", "max_amount": str(MAX_AMOUNT)},
            )

        currency =currency or getattr(settings, "DEFAULT_CURRENCY", "USD")
        if not isinstance(currency, str) or not CURRENCY_RE.match(currency):
            raise DonationValidationError(
                "Currency must be a three letter ISO 4217 code", details={"field": "currency"}
            )

        try:
            method = PaymentMethod(payment_method)
        except ValueError:
            raise InvalidPaymentMethod(
                f"Unsupported payment method: {payment_method!r}",
                details={"payment_method": str(payment_method)},
            ) from None

        return cls(
            project_id=project_id,
            amount=value,
            currency=currency.upper(),
            payment_method=method,
            donor_id=donor_id,
        )

    def to_payment_request(self, donation: Donation, project: Project, donor: Optional[Donor]) -> PaymentRequest:
        customer: Dict[str, Optional[str]] = {}
        if donor is not None and not donor.is_anonymous:
            customer = {
                "customer_name": donor.full_name or None,
                "customer_email": donor.email or None,
                "customer_phone": donor.phone_number or None,
            }
        return PaymentRequest(
            amount=self.amount,
            currency=self.currency,
            donation_id=str(donation.pk),
            project_title=project.title,
            **customer,
        )


@dataclass(frozen=True)
class DonationCheckout:
    donation_id: str
    payment_url: str
    payment_id: str
    payment_method: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "donation_id": self.donation_id,
            "payment_url": self.payment_url,
            "payment_id": self.payment_id,
            "payment_method": self.payment_method,
        }


def create_donation(
    project_id: Any,
    amount: Any,
    payment_method: Any,
    currency: Optional[str] = None,
    donor_id: Any = None,
    providers: Optional[ProviderMap] = None,
) -> DonationCheckout:
    """
    Create a pending donation and its provider payment.

    Args:
        project_id: Project receiving the donation
        amount: Amount in major units
        payment_method: "myfatoorah" or "stripe"
        currency: ISO 4217 code, defaults to settings.DEFAULT_CURRENCY
        donor_id: Optional existing donor
        providers: Optional injected provider registry

    Returns:
        DonationCheckout with the hosted payment url

    Raises:
        DonationValidationError: Invalid amount or currency
        NotFoundError: Unknown project or donor
        PreconditionFailed: Project does not accept donations
        InvalidPaymentMethod: Unknown payment method
        PaymentGatewayError: Provider call failed
    """
    draft = DonationDraft.build(project_id, amount, currency, payment_method, donor_id)

    with transaction.atomic():
        project = Project.objects.filter(pk=draft.project_id).first()
        if project is None:
            raise NotFoundError(
                f"Project {draft.project_id} not found", details={"project_id": draft.project_id}
            )
        if not project.accepts_donations:
            raise PreconditionFailed(
                f"Project '{project.title}' is not accepting donations",
                details={"project_id": project.pk},
            )

        donor = None
        if draft.donor_id is not None:
            donor = Donor.objects.filter(pk=draft.donor_id).first()
            if donor is None:
                raise NotFoundError(
                    f"Donor {draft.donor_id} not found", details={"donor_id": draft.donor_id}
                )

        provider = get_provider(draft.payment_method, providers)

        donation = Donation.objects.create(
            project=project,
            donor=donor,
            amount=draft.amount,
            currency=draft.currency,
            payment_method=draft.payment_method,
            status=DonationStatus.PENDING,
        )

        try:
            result = provider.create_payment(draft.to_payment_request(donation, project, donor))
        except PaymentGatewayError:
            logger.error(
                f"Payment creation failed for donation {donation.pk} via {draft.payment_method.value}"
            )
            raise

        donation.payment_id = result.id
        donation.payment_details = result.to_dict()
        donation.save(update_fields=["payment_id", "payment_details", "updated_at"])

    logger.info(
        f"Donation {donation.pk} created: {draft.amount} {draft.currency} "
        f"to project {project.pk} via {draft.payment_method.value} ({result.id})"
    )
    return DonationCheckout(
        donation_id=str(donation.pk),
        payment_url=result.url,
        payment_id=result.id,
        payment_method=draft.payment_method.value,
    )
