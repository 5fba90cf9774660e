"""
Donation Exceptions

Domain errors raised by the donation services. They share the
PaymentException base so the DRF exception handler renders them the same
way as provider errors.

Hierarchy:
- DonationValidationError (400)
- NotFoundError (404)
  - DonationNotFound (404)
- PreconditionFailed (412)
- ConcurrencyConflict (409)
"""

from core.payments.exceptions import PaymentException


class DonationValidationError(PaymentException):
    default_message = "Invalid donation request"
    default_status_code = 400
    default_error_code = "ValidationError"


class NotFoundError(PaymentException):
    default_message = "Resource not found"
    default_status_code = 404
    default_error_code = "NotFound"


class DonationNotFound(NotFoundError):
    """No donation matches the given id or provider payment id."""

    default_message = "Donation not found"
    default_error_code = "DonationNotFound"


class PreconditionFailed(PaymentException):
    """Raised e.g. when a project does not accept donations."""

    default_message = "Precondition failed"
    default_status_code = 412
    default_error_code = "PreconditionFailed"


class ConcurrencyConflict(PaymentException):
    """A concurrent update changed the donation between read and write."""

    default_message = "Donation was modified concurrently"
    default_status_code = 409
    default_error_code = "ConcurrencyConflict"
