from registrations.handlers.views import (
    CheckoutView,
    PaymentWebhookView,
    RegistrationCancelView,
    RegistrationSyncView,
    VanityAvailabilityView,
)

__all__ = [
    "CheckoutView",
    "PaymentWebhookView",
    "RegistrationCancelView",
    "RegistrationSyncView",
    "VanityAvailabilityView",
]
