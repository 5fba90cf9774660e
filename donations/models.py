"""
Donation Ledger Models

Models:
- Donor: Optional donor identity used to pre-fill provider customer fields
- Donation: One donation attempt and its payment lifecycle

Lifecycle:
    pending -> (processing) -> completed | failed | cancelled

A donation is created ``pending`` together with its provider payment id in
one transaction. Afterwards only the reconciliation engine changes
``status``; terminal states (completed, failed, cancelled) are never left.

Author: Charity Platform Team
Version: 1.0.0
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _

from core.payments.constants import PaymentMethod


class DonationStatus(models.TextChoices):
    PENDING = "pending", _("Pending")
    PROCESSING = "processing", _("Processing")
    COMPLETED = "completed", _("Completed")
    FAILED = "failed", _("Failed")
    CANCELLED = "cancelled", _("Cancelled")


TERMINAL_STATUSES = frozenset(
    {DonationStatus.COMPLETED, DonationStatus.FAILED, DonationStatus.CANCELLED}
)


class Donor(models.Model):
    """
    Person behind a donation.

    Donors are managed through the admin only; the donation API just checks
    that a referenced donor exists.
    """

    full_name = models.CharField(max_length=200, blank=True, verbose_name=_("Full Name"))
    email = models.EmailField(blank=True, verbose_name=_("Email"))
    phone_number = models.CharField(max_length=32, blank=True, verbose_name=_("Phone Number"))
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="donor_profiles",
        verbose_name=_("User"),
    )
    is_anonymous = models.BooleanField(default=False, verbose_name=_("Anonymous"))
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Donor")
        verbose_name_plural = _("Donors")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.full_name or self.email or f"Donor #{self.pk}"


class Donation(models.Model):
    """
    A single donation and its payment state.

    Attributes:
        amount: Donated amount in major units of ``currency``
        payment_method: Provider used; fixed at creation
        payment_id: Provider payment id (MyFatoorah InvoiceId / Stripe
            Checkout Session id), unique per payment method
        payment_details: Snapshot of the provider's creation response
        paid_at: Set once, on the transition into ``completed``
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    project = models.ForeignKey(
        "projects.Project",
        on_delete=models.PROTECT,
        related_name="donations",
        verbose_name=_("Project"),
    )
    donor = models.ForeignKey(
        Donor,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="donations",
        verbose_name=_("Donor"),
    )
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
        verbose_name=_("Amount"),
    )
    currency = models.CharField(max_length=3, verbose_name=_("Currency"))
    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        verbose_name=_("Payment Method"),
    )
    status = models.CharField(
        max_length=20,
        choices=DonationStatus.choices,
        default=DonationStatus.PENDING,
        db_index=True,
        verbose_name=_("Status"),
    )
    payment_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_("Payment ID"),
    )
    payment_details = models.JSONField(default=dict, blank=True, verbose_name=_("Payment Details"))
    paid_at = models.DateTimeField(null=True, blank=True, verbose_name=_("Paid At"))
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Donation")
        verbose_name_plural = _("Donations")
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["payment_method", "payment_id"],
                condition=Q(payment_id__isnull=False),
                name="unique_donation_payment_id_per_method",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.amount} {self.currency} to {self.project_id} ({self.status})"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
