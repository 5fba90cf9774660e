"""
Donations Django Admin Configuration

Donor records are edited here. Donations are read-mostly: they are created
only through the donation API, status and payment fields are owned by the
reconciliation engine, and the "Reconcile with provider" action re-queries
the provider for the selected donations.
"""

from django.contrib import admin, messages

from core.payments.exceptions import PaymentException

from .models import Donation, Donor
from .services import reconcile_donation


@admin.register(Donor)
class DonorAdmin(admin.ModelAdmin):
    list_display = ("full_name", "email", "phone_number", "is_anonymous", "user", "created_at")
    list_filter = ("is_anonymous",)
    search_fields = ("full_name", "email", "phone_number")
    raw_id_fields = ("user",)


@admin.register(Donation)
class DonationAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "project",
        "amount",
        "currency",
        "payment_method",
        "status",
        "payment_id",
        "paid_at",
        "created_at",
    )
    list_filter = ("status", "payment_method", "currency", "created_at")
    search_fields = ("id", "payment_id", "project__title", "donor__email")
    raw_id_fields = ("project", "donor")
    readonly_fields = (
        "id",
        "status",
        "payment_method",
        "payment_id",
        "payment_details",
        "paid_at",
        "created_at",
        "updated_at",
    )
    fieldsets = (
        (None, {"fields": ("id", "project", "donor", "amount", "currency")}),
        ("Payment", {"fields": ("payment_method", "status", "payment_id", "paid_at", "payment_details")}),
        ("Timestamps", {"fields": ("created_at", "updated_at"), "classes": ("collapse",)}),
    )
    actions = ["reconcile_selected"]

    # Amount and project feed Project aggregates once a donation completes.
    locked_fields = ("project", "amount", "currency")

    def get_readonly_fields(self, request, obj=None):
        readonly = super().get_readonly_fields(request, obj)
        if obj is not None:
            readonly = tuple(readonly) + self.locked_fields
        return readonly

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.action(description="Reconcile with provider")
    def reconcile_selected(self, request, queryset):
        applied = 0
        for donation in queryset:
            try:
                outcome = reconcile_donation(donation.pk)
            except PaymentException as e:
                self.message_user(request, f"{donation.pk}: {e.message}", level=messages.ERROR)
                continue
            applied += int(outcome.applied)
        self.message_user(request, f"{applied} donation(s) updated.", level=messages.SUCCESS)
