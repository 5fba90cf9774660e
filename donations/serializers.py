"""
Donation API Serializers

Serializers:
- DonationCreateSerializer: validates the body of POST /api/donations/
- CheckoutSerializer / OutcomeSerializer: response shapes

Author: Charity Platform Team
Version: 1.0.0
"""

from decimal import Decimal

from django.conf import settings
from rest_framework import serializers

from core.payments.constants import PaymentMethod


class DonationCreateSerializer(serializers.Serializer):
    """
    Input for a new donation.

    Validation happens before any database or provider access:
    amount > 0 with at most two decimals, 3-letter alphabetic currency,
    known payment method.
    """

    project_id = serializers.IntegerField(min_value=1)
    donor_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal("0.01")
    )
    currency = serializers.CharField(min_length=3, max_length=3, required=False)
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices)

    def validate_currency(self, value: str) -> str:
        if not value.isalpha() or not value.isascii():
            raise serializers.ValidationError("Currency must be a three letter ISO 4217 code.")
        return value.upper()

    def validate(self, attrs):
        attrs.setdefault("currency", getattr(settings, "DEFAULT_CURRENCY", "USD").upper())
        return attrs


class CheckoutSerializer(serializers.Serializer):
    donation_id = serializers.CharField()
    payment_url = serializers.URLField()
    payment_id = serializers.CharField()
    payment_method = serializers.CharField()


class OutcomeSerializer(serializers.Serializer):
    donation_id = serializers.CharField()
    previous_status = serializers.CharField()
    status = serializers.CharField()
    applied = serializers.BooleanField()
    aggregate_updated = serializers.BooleanField()
