"""Django ORM implementations of the store interfaces.

Every status change is a single conditional UPDATE so that concurrent
webhook, sync and cancel requests cannot overwrite each other.
"""

from contextlib import AbstractContextManager
from datetime import datetime

from django.core.cache import cache
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from registrations import models
from registrations.domain import (
    Allocation,
    Category,
    Credential,
    EarlyBirdWindow,
    Event,
    EventId,
    Invoice,
    Money,
    Participant,
    Registration,
    RegistrationId,
    RegistrationStatus,
    VanityConfig,
)
from registrations.stores.interfaces import BibStore, EventStore, RegistrationStore

CONFIRMED = [RegistrationStatus.PAID.value, RegistrationStatus.FREE.value]


def event_cache_key(event_id) -> str:
    return f"events:{event_id}"


def _event_to_domain(row: models.Event) -> Event:
    early_bird = None
    if row.early_bird_starts_at and row.early_bird_ends_at:
        early_bird = EarlyBirdWindow(row.early_bird_starts_at, row.early_bird_ends_at)

    categories = tuple(
        Category(
            id=c.category_id,
            name=c.name,
            list_price=Money(c.list_price),
            early_bird_price=Money(c.early_bird_price) if c.early_bird_price is not None else None,
            bib_format=c.bib_format,
            capacity=c.capacity,
        )
        for c in row.categories.all()
    )
    return Event(
        id=EventId(row.id),
        name=row.name,
        categories=categories,
        registration_closes_at=row.registration_closes_at,
        early_bird=early_bird,
        vanity=VanityConfig(enabled=row.vanity_enabled, premium=Money(row.vanity_premium)),
    )


def _registration_to_domain(row: models.Registration) -> Registration:
    invoice = None
    if row.invoice_id:
        invoice = Invoice(invoice_id=row.invoice_id, invoice_url=row.invoice_url or None)

    allocation = None
    if row.bib_number:
        allocation = Allocation(
            bib_number=row.bib_number,
            credential=Credential(
                payload=row.credential_payload or "",
                image_url=row.credential_url or "",
            ),
        )

    return Registration(
        id=RegistrationId(row.id),
        event_id=EventId(row.event_id),
        category_id=row.category_id,
        user_id=row.user_id,
        participant=Participant(
            name=row.participant_name,
            email=row.participant_email,
            phone=row.participant_phone,
            shirt_size=row.shirt_size,
            emergency_contact_name=row.emergency_contact_name,
            emergency_contact_phone=row.emergency_contact_phone,
            medical_notes=row.medical_notes,
        ),
        base_price=Money(row.base_price),
        vanity_premium=Money(row.vanity_premium),
        total_price=Money(row.total_price),
        status=RegistrationStatus(row.status),
        created_at=row.created_at,
        updated_at=row.updated_at,
        requested_vanity_number=row.requested_vanity_number,
        is_proxy=row.is_proxy,
        registered_by_name=row.registered_by_name,
        invoice=invoice,
        allocation=allocation,
        paid_at=row.paid_at,
    )


class DjangoEventStore(EventStore):
    """Database-backed event store using Django ORM."""

    def get_event(self, event_id: EventId) -> Event | None:
        row = (
            models.Event.objects.prefetch_related("categories")
            .filter(pk=event_id.value)
            .first()
        )
        return _event_to_domain(row) if row else None


class CachedEventStore(EventStore):
    """Read-through cache in front of another EventStore.

    Entries are invalidated by the signals in registrations/signals.py.
    """

    def __init__(self, store: EventStore, ttl: int) -> None:
        self._store = store
        self._ttl = ttl

    def get_event(self, event_id: EventId) -> Event | None:
        key = event_cache_key(event_id)
        event = cache.get(key)
        if event is None:
            event = self._store.get_event(event_id)
            if event is not None:
                cache.set(key, event, self._ttl)
        return event


class DjangoRegistrationStore(RegistrationStore):
    """Database-backed registration store using Django ORM."""

    def create(self, registration: Registration) -> Registration:
        p = registration.participant
        row = models.Registration.objects.create(
            id=registration.id.value,
            event_id=registration.event_id.value,
            category_id=registration.category_id,
            user_id=registration.user_id,
            registered_by_name=registration.registered_by_name,
            is_proxy=registration.is_proxy,
            participant_name=p.name,
            participant_email=p.email,
            participant_phone=p.phone,
            shirt_size=p.shirt_size,
            emergency_contact_name=p.emergency_contact_name,
            emergency_contact_phone=p.emergency_contact_phone,
            medical_notes=p.medical_notes,
            base_price=registration.base_price.amount,
            vanity_premium=registration.vanity_premium.amount,
            total_price=registration.total_price.amount,
            requested_vanity_number=registration.requested_vanity_number,
            status=registration.status.value,
            paid_at=registration.paid_at,
        )
        return _registration_to_domain(row)

    def get(self, registration_id: RegistrationId) -> Registration | None:
        row = models.Registration.objects.filter(pk=registration_id.value).first()
        return _registration_to_domain(row) if row else None

    def get_by_invoice(self, invoice_id: str) -> Registration | None:
        row = models.Registration.objects.filter(invoice_id=invoice_id).first()
        return _registration_to_domain(row) if row else None

    def find_pending(
        self, user_id: str, event_id: EventId, category_id: str, participant_email: str
    ) -> Registration | None:
        row = (
            models.Registration.objects.filter(
                user_id=user_id,
                event_id=event_id.value,
                category_id=category_id,
                participant_email__iexact=participant_email,
                status=RegistrationStatus.PENDING.value,
            )
            .order_by("-created_at")
            .first()
        )
        return _registration_to_domain(row) if row else None

    def count_confirmed(self, event_id: EventId, category_id: str) -> int:
        return models.Registration.objects.filter(
            event_id=event_id.value, category_id=category_id, status__in=CONFIRMED
        ).count()

    def transition(
        self,
        registration_id: RegistrationId,
        expected: RegistrationStatus,
        target: RegistrationStatus,
        paid_at: datetime | None = None,
    ) -> bool:
        changes = {"status": target.value, "updated_at": timezone.now()}
        if paid_at is not None:
            changes["paid_at"] = paid_at
        updated = models.Registration.objects.filter(
            pk=registration_id.value, status=expected.value
        ).update(**changes)
        return updated == 1

    def attach_invoice(self, registration_id: RegistrationId, invoice: Invoice) -> bool:
        updated = models.Registration.objects.filter(
            pk=registration_id.value, status=RegistrationStatus.PENDING.value
        ).update(
            invoice_id=invoice.invoice_id,
            invoice_url=invoice.invoice_url,
            updated_at=timezone.now(),
        )
        return updated == 1

    def record_allocation(self, registration_id: RegistrationId, allocation: Allocation) -> bool:
        updated = models.Registration.objects.filter(
            pk=registration_id.value, bib_number__isnull=True, status__in=CONFIRMED
        ).update(
            bib_number=allocation.bib_number,
            credential_payload=allocation.credential.payload,
            credential_url=allocation.credential.image_url,
            updated_at=timezone.now(),
        )
        return updated == 1


class DjangoBibStore(BibStore):
    """Bib reservations backed by a unique (event, bib_number) constraint."""

    def atomic(self) -> AbstractContextManager:
        return transaction.atomic()

    def held_by(self, registration_id: RegistrationId) -> str | None:
        return (
            models.BibReservation.objects.filter(registration_id=registration_id.value)
            .values_list("bib_number", flat=True)
            .first()
        )

    def reserve(self, event_id: EventId, bib_number: str, registration_id: RegistrationId) -> bool:
        try:
            # Savepoint: a constraint violation must not poison the caller's transaction.
            with transaction.atomic():
                models.BibReservation.objects.create(
                    event_id=event_id.value,
                    bib_number=bib_number,
                    registration_id=registration_id.value,
                )
        except IntegrityError:
            return self.held_by(registration_id) == bib_number
        return True

    def is_reserved(self, event_id: EventId, bib_number: str) -> bool:
        return models.BibReservation.objects.filter(
            event_id=event_id.value, bib_number=bib_number
        ).exists()

    def next_sequence(self, event_id: EventId, category_id: str) -> int:
        with transaction.atomic():
            counter, _ = models.BibCounter.objects.select_for_update().get_or_create(
                event_id=event_id.value, category_id=category_id
            )
            models.BibCounter.objects.filter(pk=counter.pk).update(value=F("value") + 1)
            counter.refresh_from_db(fields=["value"])
        return counter.value
