from django.urls import path

from .views import (
    DonationCreateView,
    DonationReconcileView,
    MyFatoorahWebhookView,
    PaymentCancelView,
    PaymentStatusView,
    PaymentSuccessView,
    StripeWebhookView,
)

app_name = "donations"

urlpatterns = [
    path("donations/", DonationCreateView.as_view(), name="donation-create"),
    path("donations/<uuid:donation_id>/reconcile/", DonationReconcileView.as_view(), name="donation-reconcile"),
    path("payments/myfatoorah/webhook/", MyFatoorahWebhookView.as_view(), name="myfatoorah-webhook"),
    path("payments/stripe/webhook/", StripeWebhookView.as_view(), name="stripe-webhook"),
    path("payments/<str:payment_method>/success/<uuid:donation_id>/", PaymentSuccessView.as_view(), name="payment-success"),
    path("payments/<str:payment_method>/cancel/<uuid:donation_id>/", PaymentCancelView.as_view(), name="payment-cancel"),
    path("payments/<str:payment_method>/status/<str:provider_id>/", PaymentStatusView.as_view(), name="payment-status"),
]
