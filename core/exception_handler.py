"""
DRF exception handler for payment and donation errors.

Registered as REST_FRAMEWORK["EXCEPTION_HANDLER"]. Structured
PaymentException subclasses are rendered with their own status code and
payload; everything else goes through DRF's default handler.
"""

import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.payments.exceptions import PaymentException

logger = logging.getLogger(__name__)


def payment_exception_handler(exc, context):
    if isinstance(exc, PaymentException):
        view = context.get("view")
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            f"{exc.__class__.__name__} in {view.__class__.__name__ if view else 'unknown view'}: "
            f"{exc.message}"
        )
        return Response(exc.to_dict(), status=exc.status_code)

    return exception_handler(exc, context)
