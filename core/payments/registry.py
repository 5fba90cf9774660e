"""
Provider registry.

Flat dispatch table from PaymentMethod to a configured provider instance,
built from Django settings once per process. Services accept an explicit
``providers`` mapping so tests can inject fakes without touching settings.
"""

import logging
from functools import lru_cache
from typing import Any, Dict, Mapping, Optional

from django.conf import settings

from .constants import PaymentMethod
from .exceptions import InvalidPaymentMethod
from .providers import MyFatoorahProvider, PaymentProvider, StripeProvider
from .providers.myfatoorah import build_session

logger = logging.getLogger(__name__)

ProviderMap = Mapping[PaymentMethod, PaymentProvider]


def build_providers() -> Dict[PaymentMethod, PaymentProvider]:
    """Instantiate every provider from the current settings."""
    providers: Dict[PaymentMethod, PaymentProvider] = {
        PaymentMethod.MYFATOORAH: MyFatoorahProvider(
            session=build_session(settings.MYFATOORAH_API_KEY),
            base_url=settings.MYFATOORAH_BASE_URL,
            success_url=settings.MYFATOORAH_SUCCESS_URL,
            error_url=settings.MYFATOORAH_ERROR_URL,
            webhook_secret=settings.MYFATOORAH_WEBHOOK_SECRET,
            timeout=settings.MYFATOORAH_TIMEOUT,
        ),
        PaymentMethod.STRIPE: StripeProvider(
            api_key=settings.STRIPE_SECRET_KEY,
            success_url=settings.STRIPE_SUCCESS_URL,
            cancel_url=settings.STRIPE_CANCEL_URL,
            webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
        ),
    }
    logger.debug(f"Payment providers configured: {sorted(p.value for p in providers)}")
    return providers


@lru_cache(maxsize=1)
def get_providers() -> Dict[PaymentMethod, PaymentProvider]:
    return build_providers()


def get_provider(method: Any, providers: Optional[ProviderMap] = None) -> PaymentProvider:
    """
    Resolve the provider for a payment method.

    Args:
        method: PaymentMethod or its string value
        providers: Optional injected registry, defaults to the settings-built one

    Raises:
        InvalidPaymentMethod: If the method is unknown or has no provider
    """
    try:
        key = PaymentMethod(method)
    except ValueError:
        raise InvalidPaymentMethod(
            f"Unsupported payment method: {method!r}",
            details={"payment_method": str(method)},
        ) from None

    registry = providers if providers is not None else get_providers()
    provider = registry.get(key)
    if provider is None:
        raise InvalidPaymentMethod(
            f"No provider configured for payment method: {key.value}",
            details={"payment_method": key.value},
        )
    return provider
