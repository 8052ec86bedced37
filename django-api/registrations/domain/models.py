"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in registrations/models.py (persistence layer).
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from registrations.domain.errors import CategoryNotFoundError
from registrations.domain.value_objects import (
    EarlyBirdWindow,
    EventId,
    Money,
    RegistrationId,
    VanityConfig,
)


class RegistrationStatus(str, Enum):
    """Registration lifecycle states.

    pending -> paid | failed | cancelled; free is entered only at creation.
    """

    PENDING = "pending"
    PAID = "paid"
    FREE = "free"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_confirmed(self) -> bool:
        return self in (RegistrationStatus.PAID, RegistrationStatus.FREE)


class InvoiceStatus(str, Enum):
    """Normalized payment provider invoice states."""

    PENDING = "pending"
    PAID = "paid"
    EXPIRED = "expired"
    FAILED = "failed"


@dataclass(frozen=True)
class Category:
    """Domain representation of a race category (e.g. 21K)."""

    id: str
    name: str
    list_price: Money
    early_bird_price: Money | None = None
    bib_format: str = "{number}"
    capacity: int | None = None

    def __post_init__(self) -> None:
        if self.early_bird_price is not None and self.early_bird_price.amount > self.list_price.amount:
            raise ValueError("Early bird price cannot exceed the list price")
        if "{number}" not in self.bib_format:
            raise ValueError("Bib format must contain the {number} placeholder")


@dataclass(frozen=True)
class Event:
    """Domain representation of an Event. Read-only to the checkout pipeline."""

    id: EventId
    name: str
    categories: tuple[Category, ...] = ()
    registration_closes_at: datetime | None = None
    early_bird: EarlyBirdWindow | None = None
    vanity: VanityConfig = VanityConfig()

    def category(self, category_id: str) -> Category:
        for category in self.categories:
            if category.id == category_id:
                return category
        raise CategoryNotFoundError(category_id)


@dataclass(frozen=True)
class PriceQuote:
    """Authoritative price for one registration attempt."""

    base: Money
    vanity_premium: Money

    @property
    def total(self) -> Money:
        return self.base + self.vanity_premium

    @property
    def is_free(self) -> bool:
        return self.total.amount <= 0


@dataclass(frozen=True)
class Participant:
    """The runner being registered. May differ from the paying user."""

    name: str
    email: str
    phone: str = ""
    shirt_size: str = ""
    emergency_contact_name: str = ""
    emergency_contact_phone: str = ""
    medical_notes: str = ""


@dataclass(frozen=True)
class Credential:
    """Scannable race-day credential: canonical payload plus rendered image."""

    payload: str
    image_url: str


@dataclass(frozen=True)
class Allocation:
    """Bib number and credential assigned to a confirmed registration."""

    bib_number: str
    credential: Credential


@dataclass(frozen=True)
class Invoice:
    """Provider-side invoice linked to a registration."""

    invoice_id: str
    invoice_url: str | None = None


@dataclass(frozen=True)
class Registration:
    """Domain representation of a Registration."""

    id: RegistrationId
    event_id: EventId
    category_id: str
    user_id: str
    participant: Participant
    base_price: Money
    vanity_premium: Money
    total_price: Money
    status: RegistrationStatus
    created_at: datetime
    updated_at: datetime
    requested_vanity_number: str | None = None
    is_proxy: bool = False
    registered_by_name: str = ""
    invoice: Invoice | None = None
    allocation: Allocation | None = None
    paid_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.total_price != self.base_price + self.vanity_premium:
            raise ValueError("Total price must equal base price plus vanity premium")

    @property
    def is_allocated(self) -> bool:
        return self.allocation is not None
