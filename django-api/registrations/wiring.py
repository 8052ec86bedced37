"""Builds services from settings for the HTTP handlers."""

from decimal import Decimal

from django.conf import settings

from registrations.providers.credentials import CredentialRenderer, QrCodeRenderer
from registrations.providers.payments import PaymentGateway, XenditGateway
from registrations.services.allocation_service import AllocationService
from registrations.services.checkout_service import CheckoutService, CheckoutUrls
from registrations.services.reconciliation_service import ReconciliationService
from registrations.stores.django_store import (
    CachedEventStore,
    DjangoBibStore,
    DjangoEventStore,
    DjangoRegistrationStore,
)
from registrations.stores.interfaces import EventStore


def event_store() -> EventStore:
    return CachedEventStore(DjangoEventStore(), ttl=settings.EVENT_CACHE_TTL)


def payment_gateway() -> PaymentGateway:
    return XenditGateway(
        secret_key=settings.XENDIT_SECRET_KEY,
        base_url=settings.XENDIT_BASE_URL,
        timeout=settings.PAYMENT_TIMEOUT_SECONDS,
        invoice_duration=settings.INVOICE_DURATION_SECONDS,
    )


def credential_renderer() -> CredentialRenderer:
    return QrCodeRenderer()


def allocation_service() -> AllocationService:
    return AllocationService(
        registrations=DjangoRegistrationStore(),
        events=event_store(),
        bibs=DjangoBibStore(),
        renderer=credential_renderer(),
        padding=settings.BIB_NUMBER_PADDING,
    )


def checkout_service() -> CheckoutService:
    gateway = payment_gateway()
    allocator = allocation_service()
    return CheckoutService(
        events=event_store(),
        registrations=DjangoRegistrationStore(),
        gateway=gateway,
        allocator=allocator,
        reconciler=ReconciliationService(
            registrations=DjangoRegistrationStore(), gateway=gateway, allocator=allocator
        ),
        urls=CheckoutUrls(base_url=settings.SITE_BASE_URL.rstrip("/")),
        currency=settings.PAYMENT_CURRENCY,
        price_tolerance=Decimal(str(settings.PRICE_TOLERANCE)),
    )


def reconciliation_service() -> ReconciliationService:
    return ReconciliationService(
        registrations=DjangoRegistrationStore(),
        gateway=payment_gateway(),
        allocator=allocation_service(),
    )
