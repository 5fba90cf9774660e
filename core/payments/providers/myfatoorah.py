"""
MyFatoorah Payment Provider

Invoice based redirect flow against the MyFatoorah v2 REST API:

1. SendPayment creates an invoice and returns a hosted PaymentURL
2. The donor pays on MyFatoorah and is redirected to CallBackUrl / ErrorUrl
3. MyFatoorah posts a webhook with the InvoiceId and InvoiceStatus
4. getpaymentstatus can be called at any time to re-query an invoice

Features:
- Injected requests.Session carrying the Bearer API key
- Request timeout on every call
- Transport errors, HTTP errors and IsSuccess=false all raise PaymentGatewayError

Author: Charity Platform Team
Version: 1.0.0
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

import requests

from ..constants import PaymentMethod, PaymentStatus
from ..exceptions import PaymentGatewayError
from ..status import map_myfatoorah_status
from ..types import PaymentRequest, PaymentResult, to_decimal

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://apitest.myfatoorah.com"
DEFAULT_TIMEOUT = 30

ANONYMOUS_NAME = "Anonymous Donor"
PLACEHOLDER_MOBILE = "00000000"
PLACEHOLDER_EMAIL = "anon@example.com"


def build_session(api_key: str) -> requests.Session:
    """Create a requests session authorised for the MyFatoorah API."""
    session = requests.Session()
    session.headers.update(
        {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
    )
    return session


class MyFatoorahProvider:
    """
    Payment provider for MyFatoorah invoices.

    Attributes:
        session: requests.Session with the Authorization header set
        base_url: API root, e.g. https://api.myfatoorah.com
        success_url: CallBackUrl prefix; the donation id is appended
        error_url: ErrorUrl prefix; the donation id is appended
        webhook_secret: Shared secret for webhook HMAC signatures
        timeout: Seconds before a request is abandoned
    """

    method = PaymentMethod.MYFATOORAH

    def __init__(
        self,
        session: requests.Session,
        base_url: str = DEFAULT_BASE_URL,
        success_url: str = "",
        error_url: str = "",
        webhook_secret: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.session = session
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.success_url = (success_url or "").rstrip("/")
        self.error_url = (error_url or "").rstrip("/")
        self.webhook_secret = webhook_secret or None
        self.timeout = timeout

    # --- HTTP ---

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.post(url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"MyFatoorah request to {path} failed: {e}")
            raise PaymentGatewayError(
                f"MyFatoorah request failed: {e}", provider=self.method.value
            ) from e
        except ValueError as e:
            logger.error(f"MyFatoorah returned a non-JSON response for {path}")
            raise PaymentGatewayError(
                "MyFatoorah returned an invalid response", provider=self.method.value
            ) from e

        if not isinstance(body, dict) or not body.get("IsSuccess"):
            message = body.get("Message") if isinstance(body, dict) else None
            logger.error(f"MyFatoorah {path} unsuccessful: {message}")
            raise PaymentGatewayError(
                message or "MyFatoorah reported an unsuccessful request",
                provider=self.method.value,
                details={"validation_errors": body.get("ValidationErrors")}
                if isinstance(body, dict)
                else None,
            )
        return body.get("Data") or {}

    # --- Operations ---

    def create_payment(self, request: PaymentRequest) -> PaymentResult:
        payload = {
            "CustomerName": request.customer_name or ANONYMOUS_NAME,
            "NotificationOption": "Lnk",
            "InvoiceValue": float(request.amount),
            "DisplayCurrencyIso": request.currency.upper(),
            "CustomerMobile": request.customer_phone or PLACEHOLDER_MOBILE,
            "CustomerEmail": request.customer_email or PLACEHOLDER_EMAIL,
            "CallBackUrl": f"{self.success_url}/{request.donation_id}",
            "ErrorUrl": f"{self.error_url}/{request.donation_id}",
            "Language": "en",
            "CustomerReference": request.donation_id,
            "SourceInfo": "Web",
        }
        data = self._post("/v2/SendPayment", payload)

        invoice_id = data.get("InvoiceId")
        payment_url = data.get("PaymentURL") or data.get("InvoiceURL")
        if not invoice_id or not payment_url:
            raise PaymentGatewayError(
                "MyFatoorah response is missing InvoiceId or PaymentURL",
                provider=self.method.value,
            )

        logger.info(
            f"MyFatoorah invoice {invoice_id} created for donation {request.donation_id}"
        )
        return PaymentResult(
            id=str(invoice_id),
            url=payment_url,
            status=PaymentStatus.PENDING,
            amount=request.amount,
            currency=request.currency.upper(),
            metadata={
                "invoice_id": invoice_id,
                "customer_reference": data.get("CustomerReference"),
            },
        )

    def get_payment_status(self, provider_id: str) -> PaymentResult:
        try:
            key = int(provider_id)
        except (TypeError, ValueError) as e:
            raise PaymentGatewayError(
                f"Invalid MyFatoorah invoice id: {provider_id!r}",
                provider=self.method.value,
            ) from e

        data = self._post("/v2/getpaymentstatus", {"Key": key, "KeyType": "InvoiceId"})
        invoice_value = data.get("InvoiceValue")
        amount: Optional[Decimal] = None
        if invoice_value is not None:
            try:
                amount = to_decimal(invoice_value)
            except ValueError:
                logger.warning(f"Unparseable InvoiceValue for invoice {provider_id}")

        return PaymentResult(
            id=str(data.get("InvoiceId") or provider_id),
            url=data.get("InvoiceURL"),
            status=self.map_status(data.get("InvoiceStatus")),
            amount=amount,
            currency=data.get("PaidCurrency"),
            metadata={
                "invoice_status": data.get("InvoiceStatus"),
                "customer_reference": data.get("CustomerReference"),
                "payment_date": data.get("PaymentDate") or data.get("CreatedDate"),
                "expiry_date": data.get("ExpiryDate"),
            },
        )

    def map_status(self, raw: Any) -> PaymentStatus:
        return map_myfatoorah_status(raw)
