"""
Reconcile Donations Management Command

Re-queries the payment provider for donations that are still pending or
processing and applies the status the provider reports. Meant to run from
cron to recover from lost webhooks.

Features:
- Configurable age threshold and batch size
- Dry-run mode that only queries providers
- Never cancels a donation just because it is old

Usage:
    python manage.py reconcile_donations --older-than 30 --limit 100 --verbose

Author: Charity Platform Team
Version: 1.0.0
"""

import logging
from datetime import timedelta

from django.core.management.base import BaseCommand
from django.utils import timezone

from core.payments.exceptions import PaymentException
from donations.models import Donation, DonationStatus
from donations.services import get_payment_status, reconcile_donation

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Re-query providers for pending/processing donations and apply their status."

    def add_arguments(self, parser):
        parser.add_argument(
            "--older-than",
            type=int,
            default=15,
            help="Only donations created more than this many minutes ago (default: 15)",
        )
        parser.add_argument(
            "--limit",
            type=int,
            default=100,
            help="Maximum number of donations to process (default: 100)",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Query providers but do not change any donation",
        )
        parser.add_argument(
            "--verbose",
            action="store_true",
            help="Print every donation that is checked",
        )

    def handle(self, *args, **options):
        cutoff = timezone.now() - timedelta(minutes=options["older_than"])
        dry_run = options["dry_run"]
        verbose = options["verbose"]

        candidates = (
            Donation.objects.filter(
                status__in=[DonationStatus.PENDING, DonationStatus.PROCESSING],
                created_at__lt=cutoff,
                payment_id__isnull=False,
            )
            .order_by("created_at")[: options["limit"]]
        )

        checked = updated = errors = 0
        for donation in candidates:
            checked += 1
            try:
                if dry_run:
                    result = get_payment_status(donation.payment_method, donation.payment_id)
                    line = f"  {donation.pk}: {donation.status} (provider reports {result.status})"
                else:
                    outcome = reconcile_donation(donation.pk)
                    updated += int(outcome.applied)
                    line = f"  {donation.pk}: {outcome.previous_status} -> {outcome.status}"
            except PaymentException as e:
                errors += 1
                logger.error(f"Reconciliation failed for donation {donation.pk}: {e.message}")
                self.stdout.write(self.style.ERROR(f"  {donation.pk}: {e.message}"))
                continue

            if verbose:
                self.stdout.write(line)

        prefix = "[DRY RUN] " if dry_run else ""
        summary = f"{prefix}Checked {checked} donation(s), updated {updated}, errors {errors}."
        if errors:
            self.stdout.write(self.style.WARNING(summary))
        else:
            self.stdout.write(self.style.SUCCESS(summary))
