"""
Payment Gateway Exceptions

Structured exception classes for payment provider and webhook errors. Every
exception carries an HTTP status code and a machine readable error code so
the API layer can turn it into a response without knowing the concrete type
(see core.exception_handler).

Hierarchy:
- PaymentException: base class
  - PaymentGatewayError: provider call failed or returned a failure indicator
  - InvalidSignature: webhook authenticity check failed
  - MalformedEvent: webhook payload could not be interpreted
  - InvalidPaymentMethod: no provider is registered for the requested method

Author: Charity Platform Team
Version: 1.0.0
"""

from typing import Optional, Dict, Any


class PaymentException(Exception):
    """
    Base exception class for all payment and donation related errors.

    Attributes:
        message (str): Human-readable error message
        status_code (int): HTTP status code used when the error reaches the API
        error_code (str): Stable identifier for clients and logs
        details (Dict[str, Any]): Additional error context

    Example:
        >>> try:
        ...     provider.create_payment(request)
        ... except PaymentException as e:
        ...     logger.error("Payment error: %s", e.message)
    """

    default_message = "Payment error"
    default_status_code = 400
    default_error_code = "PaymentError"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message or self.default_message
        self.status_code = status_code or self.default_status_code
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for serialization.

        Returns:
            Dictionary representation of the exception
        """
        return {
            "message": self.message,
            "status_code": self.status_code,
            "error_code": self.error_code,
            "details": self.details,
            "exception_type": self.__class__.__name__,
        }


class PaymentGatewayError(PaymentException):
    """
    Raised when a remote provider call fails or reports failure.

    Attributes:
        provider (Optional[str]): Payment method value of the failing provider
    """

    default_message = "Payment gateway request failed"
    default_status_code = 502
    default_error_code = "PaymentGatewayError"

    def __init__(
        self,
        message: Optional[str] = None,
        provider: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.provider = provider
        details = dict(details or {})
        if provider:
            details["provider"] = provider
        super().__init__(message, details=details)


class InvalidSignature(PaymentException):
    """Raised when a webhook signature is missing or does not match."""

    default_message = "Invalid webhook signature"
    default_status_code = 400
    default_error_code = "InvalidSignature"


class MalformedEvent(PaymentException):
    """Raised when a webhook payload cannot be parsed or lacks required fields."""

    default_message = "Malformed webhook event"
    default_status_code = 400
    default_error_code = "MalformedEvent"


class InvalidPaymentMethod(PaymentException):
    """Raised when a payment method is not one of the supported providers."""

    default_message = "Unsupported payment method"
    default_status_code = 400
    default_error_code = "InvalidPaymentMethod"
