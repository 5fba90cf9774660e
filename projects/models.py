"""
Charity Project Models

Models:
- Project: A fundraising project donors contribute to

The aggregate fields ``current_amount`` and ``donation_count`` are owned by
donations.services.reconciliation: they are only changed with F() expressions,
in the same transaction that moves a donation into ``completed``.

Author: Charity Platform Team
Version: 1.0.0
"""

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _


class Project(models.Model):
    """
    A fundraising project.

    Attributes:
        title: Display title, also used in provider line items
        slug: Unique URL slug
        target_amount: Fundraising goal
        current_amount: Sum of completed donation amounts
        donation_count: Number of completed donations
        is_active: Project is visible on the platform
        is_donation_active: Project currently accepts new donations
    """

    title = models.CharField(max_length=200, verbose_name=_("Title"))
    slug = models.SlugField(max_length=220, unique=True, verbose_name=_("Slug"))
    description = models.TextField(blank=True, verbose_name=_("Description"))
    target_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
        verbose_name=_("Target Amount"),
    )
    current_amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        editable=False,
        verbose_name=_("Current Amount"),
        help_text=_("Sum of completed donations"),
    )
    donation_count = models.PositiveIntegerField(
        default=0,
        editable=False,
        verbose_name=_("Donation Count"),
        help_text=_("Number of completed donations"),
    )
    is_active = models.BooleanField(default=True, verbose_name=_("Active"))
    is_donation_active = models.BooleanField(
        default=True,
        verbose_name=_("Accepting Donations"),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Project")
        verbose_name_plural = _("Projects")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.title

    @property
    def accepts_donations(self) -> bool:
        return self.is_active and self.is_donation_active

    @property
    def progress_percent(self) -> Decimal:
        if not self.target_amount:
            return Decimal("0.00")
        return (self.current_amount / self.target_amount * 100).quantize(Decimal("0.01"))
