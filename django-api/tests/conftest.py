"""Pytest configuration and shared fixtures."""

import hashlib
from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from registrations import models, wiring
from registrations.domain import EventId, Invoice, InvoiceStatus, Participant
from registrations.domain.errors import PaymentProviderUnavailableError
from registrations.providers.credentials import CredentialRenderer
from registrations.providers.payments import InvoiceLookup, PaymentGateway
from registrations.services.allocation_service import AllocationService
from registrations.services.checkout_service import CheckoutDraft, CheckoutService, CheckoutUrls
from registrations.services.reconciliation_service import ReconciliationService
from registrations.stores.django_store import (
    DjangoBibStore,
    DjangoEventStore,
    DjangoRegistrationStore,
)


class FakeGateway(PaymentGateway):
    """In-memory payment provider."""

    def __init__(self) -> None:
        self.requests = []
        self.statuses = {}
        self.expired = []
        self.unavailable = False
        self.lose_next_response = False
        self.expire_fails = False

    def create_invoice(self, request):
        if self.unavailable:
            raise PaymentProviderUnavailableError("timeout")
        self.requests.append(request)
        invoice_id = f"inv_{len(self.requests)}"
        self.statuses[invoice_id] = InvoiceStatus.PENDING
        if self.lose_next_response:
            # Created at the provider, but the caller times out.
            self.lose_next_response = False
            raise PaymentProviderUnavailableError("timeout")
        return Invoice(invoice_id=invoice_id, invoice_url=f"https://pay.example.com/{invoice_id}")

    def get_invoice_status(self, invoice_id):
        if self.unavailable:
            raise PaymentProviderUnavailableError("timeout")
        return self.statuses[invoice_id]

    def find_invoice_by_reference(self, external_ref):
        if self.unavailable:
            raise PaymentProviderUnavailableError("timeout")
        for number in range(len(self.requests), 0, -1):
            if self.requests[number - 1].external_ref == external_ref:
                invoice_id = f"inv_{number}"
                return InvoiceLookup(
                    invoice=Invoice(invoice_id, f"https://pay.example.com/{invoice_id}"),
                    status=self.statuses[invoice_id],
                )
        return None

    def expire_invoice(self, invoice_id):
        if self.unavailable or self.expire_fails:
            raise PaymentProviderUnavailableError("timeout")
        if self.statuses[invoice_id] is InvoiceStatus.PAID:
            raise PaymentProviderUnavailableError("status 400")
        self.statuses[invoice_id] = InvoiceStatus.EXPIRED
        self.expired.append(invoice_id)

    def settle(self, invoice_id, status=InvoiceStatus.PAID):
        self.statuses[invoice_id] = status


class FakeRenderer(CredentialRenderer):
    """Records rendered payloads instead of drawing QR codes."""

    def __init__(self) -> None:
        self.rendered = []
        self.failing = False

    def render(self, payload):
        if self.failing:
            raise OSError("storage unavailable")
        self.rendered.append(payload)
        return f"https://cdn.example.com/{hashlib.sha256(payload.encode()).hexdigest()[:12]}.png"


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture(autouse=True)
def clear_cache():
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def services(gateway, renderer):
    registrations = DjangoRegistrationStore()
    events = DjangoEventStore()
    allocation = AllocationService(
        registrations=registrations,
        events=events,
        bibs=DjangoBibStore(),
        renderer=renderer,
        padding=3,
    )
    reconciliation = ReconciliationService(
        registrations=registrations, gateway=gateway, allocator=allocation
    )
    checkout = CheckoutService(
        events=events,
        registrations=registrations,
        gateway=gateway,
        allocator=allocation,
        reconciler=reconciliation,
        urls=CheckoutUrls(base_url="https://race.example.com"),
    )
    return SimpleNamespace(
        allocation=allocation,
        checkout=checkout,
        reconciliation=reconciliation,
        registrations=registrations,
    )


@pytest.fixture
def wired(monkeypatch, gateway, renderer):
    """Point the HTTP handlers at the fake provider and renderer."""
    monkeypatch.setattr(wiring, "payment_gateway", lambda: gateway)
    monkeypatch.setattr(wiring, "credential_renderer", lambda: renderer)
    return SimpleNamespace(gateway=gateway, renderer=renderer)


@pytest.fixture
def make_event():
    """Create a persisted event with a paid 21K and a free 3K category."""

    def _make_event(**overrides) -> models.Event:
        categories = overrides.pop("categories", None)
        fields = {
            "name": "City Marathon",
            "registration_closes_at": timezone.now() + timedelta(days=30),
            "vanity_enabled": True,
            "vanity_premium": 200,
        }
        fields.update(overrides)
        event = models.Event.objects.create(**fields)

        if categories is None:
            categories = [
                {
                    "category_id": "21K",
                    "name": "21K Half Marathon",
                    "list_price": 500,
                    "bib_format": "21K-{number}",
                },
                {"category_id": "3K", "name": "3K Fun Run", "list_price": 0},
            ]
        for position, category in enumerate(categories):
            models.Category.objects.create(event=event, position=position, **category)
        return event

    return _make_event


@pytest.fixture
def make_draft():
    def _make_draft(event: models.Event, **overrides) -> CheckoutDraft:
        fields = {
            "event_id": EventId(event.id),
            "category_id": "21K",
            "user_id": "runner-1",
            "participant": Participant(name="Maria Santos", email="maria@example.com", phone="09171234567"),
            "client_total": Decimal("500"),
            "terms_accepted": True,
        }
        fields.update(overrides)
        return CheckoutDraft(**fields)

    return _make_draft


@pytest.fixture
def make_registration():
    """Insert a registration row directly, bypassing checkout."""

    def _make_registration(event, status="paid", vanity=None, category_id="21K", name="Runner"):
        return models.Registration.objects.create(
            event=event,
            category_id=category_id,
            user_id="runner-1",
            participant_name=name,
            participant_email="runner@example.com",
            base_price=500,
            vanity_premium=200 if vanity else 0,
            total_price=700 if vanity else 500,
            requested_vanity_number=vanity,
            status=status,
        )

    return _make_registration


@pytest.fixture
def user(db):
    return get_user_model().objects.create_user(username="maria", password="secret")


@pytest.fixture
def auth_client(api_client, user) -> APIClient:
    api_client.force_authenticate(user=user)
    return api_client
