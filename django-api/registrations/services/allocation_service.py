"""Bib number and credential allocation.

Allocation happens once per confirmed registration. Vanity numbers are
granted to whichever registration is confirmed first; later confirmations
for the same number silently receive a sequential bib instead.
"""

import logging

from registrations.domain import (
    Allocation,
    Category,
    Credential,
    EventId,
    Registration,
    RegistrationId,
    VanityNumber,
)
from registrations.domain.errors import (
    AllocationFailedError,
    EventNotFoundError,
    InvalidVanityNumberError,
    RegistrationNotAllocatableError,
    RegistrationNotFoundError,
)
from registrations.providers.credentials import CredentialRenderer, credential_payload
from registrations.stores.interfaces import BibStore, EventStore, RegistrationStore

logger = logging.getLogger(__name__)

MAX_SEQUENCE_ATTEMPTS = 50


def format_bib(template: str, sequence: int, padding: int) -> str:
    return template.replace("{number}", str(sequence).zfill(padding))


class AllocationService:
    """Assigns bib numbers and credentials to paid and free registrations."""

    def __init__(
        self,
        registrations: RegistrationStore,
        events: EventStore,
        bibs: BibStore,
        renderer: CredentialRenderer,
        padding: int = 3,
    ) -> None:
        self._registrations = registrations
        self._events = events
        self._bibs = bibs
        self._renderer = renderer
        self._padding = padding

    def allocate(self, registration_id: RegistrationId) -> Allocation:
        """Return the registration's allocation, creating it on first call.

        Raises:
            RegistrationNotFoundError: If the registration does not exist.
            RegistrationNotAllocatableError: If it is not paid or free.
            AllocationFailedError: If the credential could not be rendered.
                The reserved bib stays with the registration for the retry.
        """
        registration = self._load(registration_id)
        if registration.allocation is not None:
            return registration.allocation

        bib_number = self._reserve_bib(registration)
        payload = credential_payload(
            registration.id, registration.event_id, bib_number, registration.participant.name
        )
        try:
            image_url = self._renderer.render(payload)
        except Exception as e:
            raise AllocationFailedError(str(registration.id), str(e)) from e

        allocation = Allocation(bib_number=bib_number, credential=Credential(payload, image_url))
        if not self._registrations.record_allocation(registration.id, allocation):
            # A concurrent call for the same registration wrote first.
            logger.debug("Allocation for %s already recorded", registration.id)
            return self._load(registration_id).allocation or allocation

        logger.info("Allocated bib %s to registration %s", bib_number, registration.id)
        return allocation

    def is_vanity_available(self, event_id: EventId, number: str) -> bool:
        """Advisory check for the registration form. Reserves nothing.

        A number reported available can still go to another runner whose
        payment is confirmed first.
        """
        try:
            VanityNumber(number)
        except ValueError:
            raise InvalidVanityNumberError()
        event = self._events.get_event(event_id)
        if event is None:
            raise EventNotFoundError(str(event_id))
        return event.vanity.enabled and not self._bibs.is_reserved(event_id, number)

    def _load(self, registration_id: RegistrationId) -> Registration:
        registration = self._registrations.get(registration_id)
        if registration is None:
            raise RegistrationNotFoundError(str(registration_id))
        if not registration.status.is_confirmed:
            raise RegistrationNotAllocatableError(str(registration_id))
        return registration

    def _reserve_bib(self, registration: Registration) -> str:
        with self._bibs.atomic():
            held = self._bibs.held_by(registration.id)
            if held is not None:
                return held

            vanity = registration.requested_vanity_number
            if vanity and self._bibs.reserve(registration.event_id, vanity, registration.id):
                return vanity
            if vanity:
                logger.info(
                    "Vanity bib %s already taken in event %s, assigning sequential bib to %s",
                    vanity,
                    registration.event_id,
                    registration.id,
                )

            category = self._category(registration)
            for _ in range(MAX_SEQUENCE_ATTEMPTS):
                sequence = self._bibs.next_sequence(registration.event_id, category.id)
                bib_number = format_bib(category.bib_format, sequence, self._padding)
                if self._bibs.reserve(registration.event_id, bib_number, registration.id):
                    return bib_number
                held = self._bibs.held_by(registration.id)
                if held is not None:
                    return held

        raise AllocationFailedError(str(registration.id), "bib sequence exhausted")

    def _category(self, registration: Registration) -> Category:
        event = self._events.get_event(registration.event_id)
        if event is None:
            raise EventNotFoundError(str(registration.event_id))
        return event.category(registration.category_id)
