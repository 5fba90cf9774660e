"""
Core App Configuration - Charity Platform

The core app holds functionality shared across the platform that is not
tied to a single domain model.

Features:
- Payment provider abstraction (MyFatoorah, Stripe)
- Provider status mapping tables and webhook signature helpers
- DRF exception handler for structured payment errors

Author: Charity Platform Team
Version: 1.0.0
"""

from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core"
    verbose_name = "Core"
