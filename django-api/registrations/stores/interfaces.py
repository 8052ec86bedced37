"""Store interfaces (repository pattern).

Stores must be swappable and return domain models.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime

from registrations.domain import (
    Allocation,
    Event,
    EventId,
    Invoice,
    Registration,
    RegistrationId,
    RegistrationStatus,
)


class EventStore(ABC):
    """Read access to events and their categories."""

    @abstractmethod
    def get_event(self, event_id: EventId) -> Event | None:
        """Return an event by ID, or None if not found."""
        ...


class RegistrationStore(ABC):
    """Interface for registration persistence operations."""

    @abstractmethod
    def create(self, registration: Registration) -> Registration:
        """Insert a new registration and return it as stored."""
        ...

    @abstractmethod
    def get(self, registration_id: RegistrationId) -> Registration | None:
        """Return a registration by ID, or None if not found."""
        ...

    @abstractmethod
    def get_by_invoice(self, invoice_id: str) -> Registration | None:
        """Return the registration linked to a provider invoice, or None."""
        ...

    @abstractmethod
    def find_pending(
        self, user_id: str, event_id: EventId, category_id: str, participant_email: str
    ) -> Registration | None:
        """Return the newest pending registration for the owner/event/category and runner."""
        ...

    @abstractmethod
    def count_confirmed(self, event_id: EventId, category_id: str) -> int:
        """Count paid and free registrations in a category."""
        ...

    @abstractmethod
    def transition(
        self,
        registration_id: RegistrationId,
        expected: RegistrationStatus,
        target: RegistrationStatus,
        paid_at: datetime | None = None,
    ) -> bool:
        """Move status from expected to target in one conditional update.

        Returns False without writing if the current status is not expected.
        """
        ...

    @abstractmethod
    def attach_invoice(self, registration_id: RegistrationId, invoice: Invoice) -> bool:
        """Store provider linkage on a pending registration."""
        ...

    @abstractmethod
    def record_allocation(self, registration_id: RegistrationId, allocation: Allocation) -> bool:
        """Write bib and credential only if none is set yet."""
        ...


class BibStore(ABC):
    """Bib number uniqueness and per-category sequences."""

    @abstractmethod
    def atomic(self) -> AbstractContextManager:
        """Return a context manager wrapping a single store transaction."""
        ...

    @abstractmethod
    def held_by(self, registration_id: RegistrationId) -> str | None:
        """Return the bib number already reserved for a registration."""
        ...

    @abstractmethod
    def reserve(self, event_id: EventId, bib_number: str, registration_id: RegistrationId) -> bool:
        """Conditionally create the (event, bib_number) reservation.

        Returns False if another registration holds the number, or if this
        registration already holds a different one.
        """
        ...

    @abstractmethod
    def is_reserved(self, event_id: EventId, bib_number: str) -> bool:
        ...

    @abstractmethod
    def next_sequence(self, event_id: EventId, category_id: str) -> int:
        """Increment and return the per-category counter."""
        ...
