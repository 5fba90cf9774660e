"""
Donation Reconciliation Engine

Applies a provider-reported payment status to a donation and keeps the owning
project's aggregate fields in step, atomically.

Guarantees:
- The donation row is locked (select_for_update) and the status write is a
  compare-and-set on the status that was read. A lost race raises
  ConcurrencyConflict, which retry_on_conflict retries a bounded number of
  times; the retry then sees the winner's state.
- Project.current_amount / donation_count are incremented with F()
  expressions in the same transaction, exactly once, on the transition into
  ``completed``.
- Terminal states are sticky. A later conflicting event (e.g. a completed
  webhook after the donor cancelled) is logged and ignored.
- Status never moves backwards (processing -> pending is ignored).

Author: Charity Platform Team
Version: 1.0.0
"""

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from functools import wraps
from time import sleep
from typing import Any, Dict, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from core.payments.constants import PaymentMethod, PaymentStatus
from projects.models import Project

from ..exceptions import ConcurrencyConflict, DonationNotFound
from ..models import Donation, DonationStatus, TERMINAL_STATUSES

logger = logging.getLogger(__name__)

PAYMENT_TO_DONATION_STATUS = {
    PaymentStatus.PENDING: DonationStatus.PENDING,
    PaymentStatus.PROCESSING: DonationStatus.PROCESSING,
    PaymentStatus.COMPLETED: DonationStatus.COMPLETED,
    PaymentStatus.FAILED: DonationStatus.FAILED,
}

# Allowed forward moves; anything else is a no-op
TRANSITIONS = {
    DonationStatus.PENDING: {
        DonationStatus.PROCESSING,
        DonationStatus.COMPLETED,
        DonationStatus.FAILED,
        DonationStatus.CANCELLED,
    },
    DonationStatus.PROCESSING: {
        DonationStatus.COMPLETED,
        DonationStatus.FAILED,
        DonationStatus.CANCELLED,
    },
}


def to_donation_status(status: Any) -> DonationStatus:
    """Map a canonical PaymentStatus onto the donation lifecycle."""
    try:
        return PAYMENT_TO_DONATION_STATUS[PaymentStatus(status)]
    except (KeyError, ValueError):
        return DonationStatus.FAILED


@dataclass(frozen=True)
class ReconciliationOutcome:
    """
    Result of applying a status to a donation.

    ``applied`` is False for duplicates, sticky terminal states and
    backwards moves.
    """

    donation_id: str
    previous_status: str
    status: str
    applied: bool
    aggregate_updated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "donation_id": self.donation_id,
            "previous_status": self.previous_status,
            "status": self.status,
            "applied": self.applied,
            "aggregate_updated": self.aggregate_updated,
        }


def retry_on_conflict(max_retries: Optional[int] = None, base_delay: float = 0.05):
    """
    Decorator to retry a reconciliation step that lost a compare-and-set race.

    Args:
        max_retries: Maximum number of retry attempts, defaults to
            settings.RECONCILIATION_MAX_RETRIES
        base_delay: Base delay in seconds (will be exponentially increased)

    Returns:
        Decorated function with retry logic
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            retries = (
                max_retries
                if max_retries is not None
                else getattr(settings, "RECONCILIATION_MAX_RETRIES", 3)
            )
            for attempt in range(retries + 1):
                try:
                    return func(*args, **kwargs)
                except ConcurrencyConflict:
                    if attempt >= retries:
                        logger.error(f"Concurrency conflict persisted after {retries} retries")
                        raise
                    delay = base_delay * (2**attempt)
                    logger.warning(
                        f"Concurrency conflict on attempt {attempt + 1}/{retries + 1}. "
                        f"Retrying in {delay}s..."
                    )
                    if delay:
                        sleep(delay)

        return wrapper

    return decorator


def parse_donation_id(donation_id: Any) -> uuid.UUID:
    if isinstance(donation_id, uuid.UUID):
        return donation_id
    try:
        return uuid.UUID(str(donation_id))
    except (TypeError, ValueError):
        raise DonationNotFound(
            f"Donation {donation_id} not found", details={"donation_id": str(donation_id)}
        ) from None


class ReconciliationEngine:
    """
    Moves donations through their lifecycle.

    Example:
        >>> engine = ReconciliationEngine()
        >>> engine.apply_provider_status("stripe", "cs_test_123", PaymentStatus.COMPLETED)
    """

    def find_donation_id(self, payment_method: Any, payment_id: Any) -> uuid.UUID:
        """
        Resolve a provider payment id to a donation primary key.

        Raises:
            DonationNotFound: If no donation carries this payment id
        """
        method = PaymentMethod(payment_method)
        donation_id = (
            Donation.objects.filter(payment_method=method, payment_id=str(payment_id))
            .values_list("pk", flat=True)
            .first()
        )
        if donation_id is None:
            raise DonationNotFound(
                f"No {method.value} donation with payment id {payment_id}",
                details={"payment_method": method.value, "payment_id": str(payment_id)},
            )
        return donation_id

    def apply_provider_status(
        self,
        payment_method: Any,
        payment_id: Any,
        payment_status: PaymentStatus,
        source: str = "webhook",
    ) -> ReconciliationOutcome:
        donation_id = self.find_donation_id(payment_method, payment_id)
        return self.apply_status(donation_id, to_donation_status(payment_status), source=source)

    @retry_on_conflict()
    def apply_status(
        self,
        donation_id: Any,
        target: DonationStatus,
        source: str = "webhook",
    ) -> ReconciliationOutcome:
        """
        Apply ``target`` to a donation.

        Args:
            donation_id: Donation primary key
            target: Desired donation status
            source: Label for logs (webhook, cancel_callback, manual, ...)

        Returns:
            ReconciliationOutcome describing what changed

        Raises:
            DonationNotFound: Unknown donation id
            ConcurrencyConflict: Compare-and-set lost more often than the retry budget
        """
        pk = parse_donation_id(donation_id)
        target = DonationStatus(target)

        with transaction.atomic():
            donation = Donation.objects.select_for_update().filter(pk=pk).first()
            if donation is None:
                raise DonationNotFound(
                    f"Donation {pk} not found", details={"donation_id": str(pk)}
                )

            previous = DonationStatus(donation.status)
            if previous == target:
                logger.info(f"[{source}] donation {pk} already {target}, nothing to do")
                return self._noop(donation)

            if previous in TERMINAL_STATUSES:
                logger.warning(
                    f"[{source}] ignoring {target} for donation {pk}: already terminal ({previous})"
                )
                return self._noop(donation)

            if target not in TRANSITIONS.get(previous, ()):
                logger.info(f"[{source}] ignoring backwards move {previous} -> {target} for {pk}")
                return self._noop(donation)

            now = timezone.now()
            updates: Dict[str, Any] = {"status": target, "updated_at": now}
            if target == DonationStatus.COMPLETED:
                updates["paid_at"] = now

            if self._write_status(donation, previous, updates) != 1:
                raise ConcurrencyConflict(
                    f"Donation {pk} changed while applying {target}",
                    details={"donation_id": str(pk), "expected_status": previous.value},
                )

            aggregate_updated = False
            if target == DonationStatus.COMPLETED:
                self._increment_project(donation.project_id, donation.amount)
                aggregate_updated = True

        logger.info(f"[{source}] donation {pk}: {previous} -> {target}")
        return ReconciliationOutcome(
            donation_id=str(pk),
            previous_status=previous.value,
            status=target.value,
            applied=True,
            aggregate_updated=aggregate_updated,
        )

    # --- helpers ---

    def _write_status(self, donation: Donation, expected: DonationStatus, updates: Dict[str, Any]) -> int:
        return Donation.objects.filter(pk=donation.pk, status=expected).update(**updates)

    def _increment_project(self, project_id: int, amount: Decimal) -> None:
        Project.objects.filter(pk=project_id).update(
            current_amount=F("current_amount") + amount,
            donation_count=F("donation_count") + 1,
        )

    @staticmethod
    def _noop(donation: Donation) -> ReconciliationOutcome:
        return ReconciliationOutcome(
            donation_id=str(donation.pk),
            previous_status=donation.status,
            status=donation.status,
            applied=False,
        )
