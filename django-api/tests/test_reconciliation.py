"""Tests for payment reconciliation (sync pull and webhook push).

Run with: pytest tests/test_reconciliation.py -v
"""

import logging
import uuid
from decimal import Decimal

import pytest

from registrations import models
from registrations.domain import (
    Invoice,
    InvoiceStatus,
    Participant,
    RegistrationId,
    RegistrationStatus,
)
from registrations.domain.errors import PaymentProviderUnavailableError, RegistrationNotFoundError


@pytest.fixture
def paid_checkout(services, make_event, make_draft):
    """Start a paid 21K checkout and return its registration id."""

    def _paid_checkout(event=None, **overrides):
        event = event or make_event()
        return services.checkout.create_checkout(make_draft(event, **overrides)).registration_id

    return _paid_checkout


@pytest.mark.django_db
class TestSync:
    def test_sync_finds_payment_missed_by_webhook(self, services, gateway, paid_checkout):
        """The runner returns from the provider before any webhook arrives."""
        registration_id = paid_checkout()
        gateway.settle("inv_1")

        registration = services.reconciliation.sync(registration_id)

        assert registration.status is RegistrationStatus.PAID
        assert registration.paid_at is not None
        assert registration.allocation.bib_number == "21K-001"

    def test_sync_while_still_pending(self, services, paid_checkout):
        registration_id = paid_checkout()

        registration = services.reconciliation.sync(registration_id)

        assert registration.status is RegistrationStatus.PENDING
        assert registration.allocation is None

    @pytest.mark.parametrize("status", [InvoiceStatus.EXPIRED, InvoiceStatus.FAILED])
    def test_sync_marks_failed(self, services, gateway, paid_checkout, status):
        registration_id = paid_checkout()
        gateway.settle("inv_1", status)

        registration = services.reconciliation.sync(registration_id)

        assert registration.status is RegistrationStatus.FAILED
        assert registration.allocation is None

    def test_sync_is_idempotent(self, services, gateway, renderer, paid_checkout):
        registration_id = paid_checkout()
        gateway.settle("inv_1")

        first = services.reconciliation.sync(registration_id)
        second = services.reconciliation.sync(registration_id)

        assert first.allocation == second.allocation
        assert len(renderer.rendered) == 1

    def test_provider_outage_leaves_registration_untouched(self, services, gateway, paid_checkout):
        registration_id = paid_checkout()
        gateway.unavailable = True

        with pytest.raises(PaymentProviderUnavailableError):
            services.reconciliation.sync(registration_id)

        assert services.registrations.get(registration_id).status is RegistrationStatus.PENDING

    def test_sync_recovers_invoice_lost_to_timeout(self, services, gateway, paid_checkout):
        """The provider created the invoice but checkout never saw the response."""
        gateway.lose_next_response = True
        with pytest.raises(PaymentProviderUnavailableError):
            paid_checkout()
        registration_id = RegistrationId(models.Registration.objects.get().id)
        gateway.settle("inv_1")

        registration = services.reconciliation.sync(registration_id)

        assert registration.invoice == Invoice("inv_1", "https://pay.example.com/inv_1")
        assert registration.status is RegistrationStatus.PAID
        assert registration.allocation.bib_number == "21K-001"

    def test_sync_without_provider_invoice_stays_pending(self, services, gateway, paid_checkout):
        gateway.unavailable = True
        with pytest.raises(PaymentProviderUnavailableError):
            paid_checkout()
        gateway.unavailable = False
        registration_id = RegistrationId(models.Registration.objects.get().id)

        registration = services.reconciliation.sync(registration_id)

        assert registration.status is RegistrationStatus.PENDING
        assert registration.invoice is None

    def test_sync_unknown_registration(self, services):
        with pytest.raises(RegistrationNotFoundError):
            services.reconciliation.sync(RegistrationId(uuid.uuid4()))

    def test_sync_retries_failed_allocation(self, services, gateway, renderer, paid_checkout):
        """A paid registration left without a credential is completed by the next sync."""
        registration_id = paid_checkout(vanity_number="007", client_total=Decimal("700"))
        gateway.settle("inv_1")
        renderer.failing = True

        registration = services.reconciliation.sync(registration_id)
        assert registration.status is RegistrationStatus.PAID
        assert registration.allocation is None

        renderer.failing = False
        registration = services.reconciliation.sync(registration_id)

        assert registration.allocation.bib_number == "007"


@pytest.mark.django_db
class TestNotifications:
    def test_duplicate_webhook_has_single_effect(self, services, renderer, paid_checkout):
        """The provider delivers the same paid notification twice."""
        registration_id = paid_checkout()

        first = services.reconciliation.handle_notification("inv_1", InvoiceStatus.PAID)
        second = services.reconciliation.handle_notification("inv_1", InvoiceStatus.PAID)

        assert first.status is second.status is RegistrationStatus.PAID
        assert first.paid_at == second.paid_at
        assert second.allocation == first.allocation
        assert len(renderer.rendered) == 1
        assert models.BibReservation.objects.filter(registration_id=registration_id.value).count() == 1

    def test_webhook_then_sync_agree(self, services, gateway, paid_checkout):
        registration_id = paid_checkout()
        services.reconciliation.handle_notification("inv_1", InvoiceStatus.PAID)
        gateway.settle("inv_1")

        registration = services.reconciliation.sync(registration_id)

        assert registration.status is RegistrationStatus.PAID
        assert registration.allocation.bib_number == "21K-001"

    def test_late_failure_does_not_undo_payment(self, services, paid_checkout):
        paid_checkout()
        paid = services.reconciliation.handle_notification("inv_1", InvoiceStatus.PAID)

        registration = services.reconciliation.handle_notification("inv_1", InvoiceStatus.EXPIRED)

        assert registration.status is RegistrationStatus.PAID
        assert registration.allocation == paid.allocation

    def test_unknown_invoice_ignored(self, services, paid_checkout):
        registration_id = paid_checkout()

        assert services.reconciliation.handle_notification("inv_999", InvoiceStatus.PAID) is None
        assert services.registrations.get(registration_id).status is RegistrationStatus.PENDING

    def test_falls_back_to_external_ref(self, services, gateway, paid_checkout):
        """Invoice created but never attached because checkout timed out."""
        registration_id = paid_checkout()
        models.Registration.objects.filter(pk=registration_id.value).update(
            invoice_id=None, invoice_url=None
        )

        registration = services.reconciliation.handle_notification(
            "inv_1", InvoiceStatus.PAID, external_ref=str(registration_id)
        )

        assert registration.status is RegistrationStatus.PAID
        assert registration.invoice == Invoice("inv_1")

    def test_fallback_keeps_hosted_page_from_notification(self, services, paid_checkout):
        registration_id = paid_checkout()
        models.Registration.objects.filter(pk=registration_id.value).update(
            invoice_id=None, invoice_url=None
        )

        registration = services.reconciliation.handle_notification(
            "inv_1",
            InvoiceStatus.PENDING,
            external_ref=str(registration_id),
            invoice_url="https://pay.example.com/inv_1",
        )

        assert registration.invoice == Invoice("inv_1", "https://pay.example.com/inv_1")

    def test_payment_for_cancelled_registration_is_flagged(self, services, paid_checkout, caplog):
        registration_id = paid_checkout()
        services.registrations.transition(
            registration_id, RegistrationStatus.PENDING, RegistrationStatus.CANCELLED
        )

        with caplog.at_level(logging.WARNING, logger="registrations.services.reconciliation_service"):
            registration = services.reconciliation.handle_notification("inv_1", InvoiceStatus.PAID)

        assert registration.status is RegistrationStatus.CANCELLED
        assert registration.allocation is None
        assert f"Payment received for cancelled registration {registration_id}" in caplog.text

    def test_malformed_external_ref_ignored(self, services, paid_checkout):
        paid_checkout()

        assert (
            services.reconciliation.handle_notification(
                "inv_404", InvoiceStatus.PAID, external_ref="not-a-uuid"
            )
            is None
        )


@pytest.mark.django_db
def test_vanity_contention_first_confirmation_wins(services, make_event, make_draft):
    """Two runners request bib 007; the one whose payment lands first keeps it."""
    event = make_event()
    first = services.checkout.create_checkout(
        make_draft(event, vanity_number="007", client_total=Decimal("700"))
    )
    second = services.checkout.create_checkout(
        make_draft(
            event,
            user_id="runner-2",
            participant=Participant(name="Jose Cruz", email="jose@example.com"),
            vanity_number="007",
            client_total=Decimal("700"),
        )
    )

    # The second runner's payment is confirmed first.
    winner = services.reconciliation.handle_notification("inv_2", InvoiceStatus.PAID)
    loser = services.reconciliation.handle_notification("inv_1", InvoiceStatus.PAID)

    assert winner.id == second.registration_id
    assert winner.allocation.bib_number == "007"
    assert loser.id == first.registration_id
    assert loser.status is RegistrationStatus.PAID
    assert loser.allocation.bib_number == "21K-001"
