from django.urls import path

from registrations.handlers import (
    CheckoutView,
    PaymentWebhookView,
    RegistrationCancelView,
    RegistrationSyncView,
    VanityAvailabilityView,
)

urlpatterns = [
    path("checkout", CheckoutView.as_view(), name="checkout"),
    path(
        "registrations/<str:registration_id>/sync",
        RegistrationSyncView.as_view(),
        name="registration-sync",
    ),
    path(
        "registrations/<str:registration_id>/cancel",
        RegistrationCancelView.as_view(),
        name="registration-cancel",
    ),
    path(
        "events/<str:event_id>/vanity-numbers/<str:number>",
        VanityAvailabilityView.as_view(),
        name="vanity-availability",
    ),
    path("webhooks/payment", PaymentWebhookView.as_view(), name="payment-webhook"),
]
