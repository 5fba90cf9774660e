from .base import PaymentProvider
from .myfatoorah import MyFatoorahProvider
from .stripe_checkout import StripeProvider

__all__ = ["PaymentProvider", "MyFatoorahProvider", "StripeProvider"]
