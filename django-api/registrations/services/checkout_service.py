"""Checkout orchestration.

Services:
- Depend only on interfaces (stores, providers)
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or domain errors
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from django.utils import timezone

from registrations.domain import (
    Event,
    EventId,
    Invoice,
    Participant,
    PriceQuote,
    Registration,
    RegistrationId,
    RegistrationStatus,
    VanityNumber,
)
from registrations.domain.errors import (
    AllocationFailedError,
    CategoryFullError,
    EventNotFoundError,
    InvalidVanityNumberError,
    PaymentProviderUnavailableError,
    RegistrationClosedError,
    RegistrationNotCancellableError,
    RegistrationNotFoundError,
    RegistrationNotPendingError,
    TermsNotAcceptedError,
)
from registrations.domain.pricing import compute_price, is_registration_closed, verify_client_price
from registrations.providers.payments import InvoiceRequest, LineItem, PaymentGateway
from registrations.services.allocation_service import AllocationService
from registrations.services.reconciliation_service import ReconciliationService
from registrations.stores.interfaces import EventStore, RegistrationStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutDraft:
    """A registration attempt as submitted by the client."""

    event_id: EventId
    category_id: str
    user_id: str
    participant: Participant
    client_total: Decimal
    terms_accepted: bool
    vanity_number: str | None = None
    is_proxy: bool = False
    registered_by_name: str = ""


@dataclass(frozen=True)
class CheckoutResult:
    registration_id: RegistrationId
    redirect_url: str | None = None

    @property
    def free(self) -> bool:
        return self.redirect_url is None


@dataclass(frozen=True)
class CheckoutUrls:
    """Where the provider sends the runner after paying."""

    base_url: str

    def success(self, event_id: EventId, registration_id: RegistrationId) -> str:
        return f"{self.base_url}/events/{event_id}/register/success?id={registration_id}"

    def failure(self, event_id: EventId, registration_id: RegistrationId) -> str:
        return f"{self.base_url}/events/{event_id}/register/failed?id={registration_id}"


class CheckoutService:
    """Creates registrations and opens provider invoices for them."""

    def __init__(
        self,
        events: EventStore,
        registrations: RegistrationStore,
        gateway: PaymentGateway,
        allocator: AllocationService,
        reconciler: ReconciliationService,
        urls: CheckoutUrls,
        currency: str = "PHP",
        price_tolerance: Decimal = Decimal("0.01"),
    ) -> None:
        self._events = events
        self._registrations = registrations
        self._gateway = gateway
        self._allocator = allocator
        self._reconciler = reconciler
        self._urls = urls
        self._currency = currency
        self._price_tolerance = price_tolerance

    def create_checkout(self, draft: CheckoutDraft, now: datetime | None = None) -> CheckoutResult:
        """Validate a draft, persist its registration and start payment.

        Raises:
            TermsNotAcceptedError, InvalidVanityNumberError: Malformed draft.
            EventNotFoundError, CategoryNotFoundError: Unknown event or category.
            RegistrationClosedError: Past the event's registration deadline.
            CategoryFullError: Category capacity already reached.
            PriceMismatchError: Client total disagrees with the server price.
            PaymentProviderUnavailableError: Invoice could not be created or an
                earlier attempt could not be checked. The pending registration
                is kept and reused by the next attempt.
            RegistrationNotPendingError: The registration was cancelled while
                its invoice was being opened.
        """
        now = now or timezone.now()
        if not draft.terms_accepted:
            raise TermsNotAcceptedError()
        if draft.vanity_number:
            try:
                VanityNumber(draft.vanity_number)
            except ValueError:
                raise InvalidVanityNumberError()

        event = self._events.get_event(draft.event_id)
        if event is None:
            raise EventNotFoundError(str(draft.event_id))
        if is_registration_closed(event, now):
            raise RegistrationClosedError()

        category = event.category(draft.category_id)
        if category.capacity is not None:
            if self._registrations.count_confirmed(event.id, category.id) >= category.capacity:
                raise CategoryFullError(category.id)

        vanity = draft.vanity_number if draft.vanity_number and event.vanity.enabled else None
        quote = compute_price(event, category, vanity is not None, now)
        verify_client_price(quote, draft.client_total, self._price_tolerance)

        existing = self._reusable_pending(draft, quote, vanity)
        if existing is not None:
            return self._resume(event, existing)

        registration = self._registrations.create(
            Registration(
                id=RegistrationId(uuid.uuid4()),
                event_id=event.id,
                category_id=category.id,
                user_id=draft.user_id,
                participant=draft.participant,
                base_price=quote.base,
                vanity_premium=quote.vanity_premium,
                total_price=quote.total,
                status=RegistrationStatus.FREE if quote.is_free else RegistrationStatus.PENDING,
                created_at=now,
                updated_at=now,
                requested_vanity_number=vanity,
                is_proxy=draft.is_proxy,
                registered_by_name=draft.registered_by_name,
                paid_at=now if quote.is_free else None,
            )
        )
        logger.info(
            "Created %s registration %s for event %s (total %s)",
            registration.status.value,
            registration.id,
            event.id,
            quote.total,
        )

        if quote.is_free:
            self._allocate_quietly(registration.id)
            return CheckoutResult(registration_id=registration.id)

        return self._open_invoice(event, registration)

    def get_registration(self, registration_id: RegistrationId) -> Registration:
        registration = self._registrations.get(registration_id)
        if registration is None:
            raise RegistrationNotFoundError(str(registration_id))
        return registration

    def cancel_registration(
        self, registration_id: RegistrationId, actor_user_id: str, is_operator: bool = False
    ) -> Registration:
        """Cancel a pending registration on behalf of its owner or an operator.

        An open invoice is expired at the provider first, so nothing can be
        paid against a cancelled registration.

        Raises:
            RegistrationNotFoundError: Unknown id, or not owned by the actor.
            RegistrationNotCancellableError: Not pending, or a payment
                confirmation won the race.
            PaymentProviderUnavailableError: The invoice could not be checked
                or expired. The registration stays pending.
        """
        registration = self.get_registration(registration_id)
        if not is_operator and registration.user_id != actor_user_id:
            raise RegistrationNotFoundError(str(registration_id))
        if registration.status is not RegistrationStatus.PENDING:
            raise RegistrationNotCancellableError(str(registration_id))

        registration = self._reconciler.sync(registration_id)
        if registration.status is not RegistrationStatus.PENDING:
            raise RegistrationNotCancellableError(str(registration_id))
        if registration.invoice is not None:
            self._gateway.expire_invoice(registration.invoice.invoice_id)

        if not self._registrations.transition(
            registration_id, RegistrationStatus.PENDING, RegistrationStatus.CANCELLED
        ):
            raise RegistrationNotCancellableError(str(registration_id))

        logger.info("Registration %s cancelled by %s", registration_id, actor_user_id)
        return self.get_registration(registration_id)

    def _reusable_pending(
        self, draft: CheckoutDraft, quote: PriceQuote, vanity: str | None
    ) -> Registration | None:
        pending = self._registrations.find_pending(
            draft.user_id, draft.event_id, draft.category_id, draft.participant.email
        )
        if pending is None:
            return None

        # The runner may have paid, or the invoice lapsed, since the last attempt.
        current = self._reconciler.sync(pending.id)
        if current.status is RegistrationStatus.PAID:
            return current
        if current.status is not RegistrationStatus.PENDING:
            return None

        if (
            current.total_price == quote.total
            and current.requested_vanity_number == vanity
            and current.participant == draft.participant
        ):
            return current

        self._retire(current)
        return None

    def _retire(self, registration: Registration) -> None:
        """Cancel a superseded registration once its invoice can no longer be paid."""
        if registration.invoice is not None:
            try:
                self._gateway.expire_invoice(registration.invoice.invoice_id)
            except PaymentProviderUnavailableError:
                logger.warning(
                    "Could not expire invoice %s, superseded registration %s stays pending",
                    registration.invoice.invoice_id,
                    registration.id,
                )
                return

        if self._registrations.transition(
            registration.id, RegistrationStatus.PENDING, RegistrationStatus.CANCELLED
        ):
            logger.info("Superseded pending registration %s", registration.id)

    def _resume(self, event: Event, registration: Registration) -> CheckoutResult:
        if registration.status is RegistrationStatus.PAID:
            logger.info("Registration %s already paid, skipping checkout", registration.id)
            return CheckoutResult(
                registration_id=registration.id,
                redirect_url=self._urls.success(event.id, registration.id),
            )

        logger.info("Reusing pending registration %s", registration.id)
        invoice = registration.invoice
        if invoice is not None and not invoice.invoice_url:
            # Linked from a notification that carried no hosted page URL.
            lookup = self._gateway.find_invoice_by_reference(str(registration.id))
            invoice = lookup.invoice if lookup is not None and lookup.invoice.invoice_url else None
            if invoice is not None:
                self._registrations.attach_invoice(registration.id, invoice)

        if invoice is not None:
            return CheckoutResult(registration_id=registration.id, redirect_url=invoice.invoice_url)
        return self._open_invoice(event, registration)

    def _open_invoice(self, event: Event, registration: Registration) -> CheckoutResult:
        category = event.category(registration.category_id)
        items = [LineItem(f"Base Fee: {category.name}", registration.base_price.amount, "Registration")]
        if registration.vanity_premium.amount > 0:
            items.append(
                LineItem(
                    f"Vanity Number: {registration.requested_vanity_number}",
                    registration.vanity_premium.amount,
                    "Vanity Fee",
                )
            )

        invoice = self._gateway.create_invoice(
            InvoiceRequest(
                external_ref=str(registration.id),
                amount=registration.total_price.amount,
                currency=self._currency,
                description=f"Registration for {event.name} - {category.name}",
                success_url=self._urls.success(event.id, registration.id),
                failure_url=self._urls.failure(event.id, registration.id),
                customer_name=registration.participant.name,
                customer_email=registration.participant.email,
                customer_phone=registration.participant.phone,
                line_items=tuple(items),
            )
        )
        if not self._registrations.attach_invoice(registration.id, invoice):
            return self._detached(event, registration.id, invoice)
        return CheckoutResult(registration_id=registration.id, redirect_url=invoice.invoice_url)

    def _detached(
        self, event: Event, registration_id: RegistrationId, invoice: Invoice
    ) -> CheckoutResult:
        """Settle an invoice opened for a registration that left pending meanwhile."""
        current = self.get_registration(registration_id)
        if current.status.is_confirmed:
            return CheckoutResult(
                registration_id=registration_id,
                redirect_url=self._urls.success(event.id, registration_id),
            )

        logger.warning(
            "Invoice %s not attached: registration %s is %s",
            invoice.invoice_id,
            registration_id,
            current.status.value,
        )
        try:
            self._gateway.expire_invoice(invoice.invoice_id)
        except PaymentProviderUnavailableError:
            logger.warning("Could not expire orphaned invoice %s", invoice.invoice_id)
        raise RegistrationNotPendingError(str(registration_id))

    def _allocate_quietly(self, registration_id: RegistrationId) -> None:
        try:
            self._allocator.allocate(registration_id)
        except AllocationFailedError:
            logger.exception("Allocation failed for registration %s, will retry on sync", registration_id)
