from registrations.domain.models import (
    Allocation,
    Category,
    Credential,
    Event,
    Invoice,
    InvoiceStatus,
    Participant,
    PriceQuote,
    Registration,
    RegistrationStatus,
)
from registrations.domain.value_objects import (
    EarlyBirdWindow,
    EventId,
    Money,
    RegistrationId,
    VanityConfig,
    VanityNumber,
)

__all__ = [
    "Allocation",
    "Category",
    "Credential",
    "Event",
    "Invoice",
    "InvoiceStatus",
    "Participant",
    "PriceQuote",
    "Registration",
    "RegistrationStatus",
    "EarlyBirdWindow",
    "EventId",
    "Money",
    "RegistrationId",
    "VanityConfig",
    "VanityNumber",
]
