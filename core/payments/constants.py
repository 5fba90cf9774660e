from django.db import models


class PaymentMethod(models.TextChoices):
    """Supported payment providers. Stored on every donation."""

    MYFATOORAH = "myfatoorah", "MyFatoorah"
    STRIPE = "stripe", "Stripe"


class PaymentStatus(models.TextChoices):
    """Canonical provider-independent payment status."""

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
