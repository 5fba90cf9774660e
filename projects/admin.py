from django.contrib import admin

from .models import Project


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    """
    Admin for fundraising projects.

    The aggregate fields are maintained by payment reconciliation and are
    shown read-only.
    """

    list_display = (
        "title",
        "target_amount",
        "current_amount",
        "donation_count",
        "progress_percent",
        "is_active",
        "is_donation_active",
        "created_at",
    )
    list_filter = ("is_active", "is_donation_active")
    search_fields = ("title", "slug", "description")
    prepopulated_fields = {"slug": ("title",)}
    readonly_fields = ("current_amount", "donation_count", "created_at", "updated_at")
    fieldsets = (
        (None, {"fields": ("title", "slug", "description")}),
        ("Fundraising", {"fields": ("target_amount", "current_amount", "donation_count")}),
        ("Status", {"fields": ("is_active", "is_donation_active")}),
        ("Timestamps", {"fields": ("created_at", "updated_at"), "classes": ("collapse",)}),
    )
