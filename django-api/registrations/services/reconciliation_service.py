"""Reconciliation of provider invoice state into registrations.

Pull (sync) and push (webhook) both end in the same transition. The
pending -> paid/failed move is a conditional update, so replays and races
between the two entry points resolve to a single business effect.
"""

import logging
from datetime import datetime

from django.utils import timezone

from registrations.domain import (
    Invoice,
    InvoiceStatus,
    Registration,
    RegistrationId,
    RegistrationStatus,
)
from registrations.domain.errors import AllocationFailedError, RegistrationNotFoundError
from registrations.providers.payments import PaymentGateway
from registrations.services.allocation_service import AllocationService
from registrations.stores.interfaces import RegistrationStore

logger = logging.getLogger(__name__)


class ReconciliationService:
    def __init__(
        self,
        registrations: RegistrationStore,
        gateway: PaymentGateway,
        allocator: AllocationService,
    ) -> None:
        self._registrations = registrations
        self._gateway = gateway
        self._allocator = allocator

    def sync(self, registration_id: RegistrationId, now: datetime | None = None) -> Registration:
        """Pull the provider's invoice status and apply it.

        A pending registration with no linked invoice is looked up at the
        provider by its id, in case the invoice was created but the checkout
        never heard back.

        Raises:
            RegistrationNotFoundError: If the registration does not exist.
            PaymentProviderUnavailableError: If the provider cannot be reached.
        """
        registration = self._registrations.get(registration_id)
        if registration is None:
            raise RegistrationNotFoundError(str(registration_id))

        if registration.status is not RegistrationStatus.PENDING:
            return self._ensure_allocated(registration)

        if registration.invoice is None:
            lookup = self._gateway.find_invoice_by_reference(str(registration.id))
            if lookup is None:
                return registration
            logger.info(
                "Recovered invoice %s for registration %s", lookup.invoice.invoice_id, registration.id
            )
            self._registrations.attach_invoice(registration.id, lookup.invoice)
            return self._apply(registration, lookup.status, now)

        status = self._gateway.get_invoice_status(registration.invoice.invoice_id)
        return self._apply(registration, status, now)

    def handle_notification(
        self,
        invoice_id: str,
        status: InvoiceStatus,
        external_ref: str | None = None,
        invoice_url: str | None = None,
        now: datetime | None = None,
    ) -> Registration | None:
        """Apply a provider push notification. Unknown invoices are ignored."""
        registration = self._registrations.get_by_invoice(invoice_id)
        if registration is None and external_ref:
            try:
                registration = self._registrations.get(RegistrationId.from_string(external_ref))
            except ValueError:
                registration = None
            if registration is not None and registration.invoice is None:
                # Invoice created but its linkage was lost to a checkout timeout.
                self._registrations.attach_invoice(
                    registration.id, Invoice(invoice_id, invoice_url or None)
                )

        if registration is None:
            logger.warning("Notification for unknown invoice %s ignored", invoice_id)
            return None

        return self._apply(registration, status, now)

    def _apply(
        self, registration: Registration, status: InvoiceStatus, now: datetime | None
    ) -> Registration:
        now = now or timezone.now()

        if status is InvoiceStatus.PAID:
            if self._registrations.transition(
                registration.id, RegistrationStatus.PENDING, RegistrationStatus.PAID, paid_at=now
            ):
                logger.info("Registration %s marked paid", registration.id)
            else:
                self._check_late_payment(registration.id)

        elif status in (InvoiceStatus.FAILED, InvoiceStatus.EXPIRED):
            if self._registrations.transition(
                registration.id, RegistrationStatus.PENDING, RegistrationStatus.FAILED
            ):
                logger.info("Registration %s marked failed (invoice %s)", registration.id, status.value)

        return self._ensure_allocated(self._registrations.get(registration.id))

    def _check_late_payment(self, registration_id: RegistrationId) -> None:
        current = self._registrations.get(registration_id)
        if current.status in (RegistrationStatus.CANCELLED, RegistrationStatus.FAILED):
            # Money taken for a registration that will not be honoured.
            logger.warning(
                "Payment received for %s registration %s, needs refund or manual review",
                current.status.value,
                registration_id,
            )
        else:
            logger.debug("Registration %s already past pending, paid notice is a no-op", registration_id)

    def _ensure_allocated(self, registration: Registration) -> Registration:
        if not registration.status.is_confirmed or registration.is_allocated:
            return registration

        try:
            self._allocator.allocate(registration.id)
        except AllocationFailedError:
            logger.exception("Allocation failed for registration %s, will retry on sync", registration.id)
            return registration
        return self._registrations.get(registration.id)
