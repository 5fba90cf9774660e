"""
Webhook signature verification for MyFatoorah.

MyFatoorah signs webhook deliveries with an HMAC-SHA256 of the raw request
body, hex encoded, using the shared webhook secret. Stripe signatures are
verified with the stripe SDK (see donations.services.webhooks).
"""

import hashlib
import hmac
from typing import Any, Optional, Union


def compute_hmac_signature(raw_body: bytes, secret: str) -> str:
    """Hex encoded HMAC-SHA256 of ``raw_body`` keyed with ``secret``."""
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_hmac_signature(
    raw_body: Union[bytes, str, Any],
    signature: Optional[Any],
    secret: Optional[str],
) -> bool:
    """
    Check a webhook signature in constant time.

    Never raises: malformed input (missing secret, missing or non-string
    signature, body that is neither bytes nor str) returns False. Whether a
    missing signature is fatal is the caller's decision.

    Args:
        raw_body: Raw request body exactly as received
        signature: Value of the signature header
        secret: Shared webhook secret

    Returns:
        True if the signature matches, False otherwise
    """
    if not secret or not isinstance(secret, str):
        return False
    if not isinstance(signature, str) or not signature.strip():
        return False
    if isinstance(raw_body, str):
        raw_body = raw_body.encode("utf-8")
    if not isinstance(raw_body, (bytes, bytearray)):
        return False

    expected = compute_hmac_signature(bytes(raw_body), secret)
    provided = signature.strip().lower()
    try:
        return hmac.compare_digest(expected, provided)
    except TypeError:
        # non-ASCII characters in the header
        return False
