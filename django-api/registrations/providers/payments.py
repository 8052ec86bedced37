"""Payment provider client.

Only the invoice contract is consumed: create an invoice keyed by the
registration id, query its status, find it again by that id, and expire it.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import httpx

from registrations.domain import Invoice, InvoiceStatus
from registrations.domain.errors import PaymentProviderUnavailableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LineItem:
    name: str
    price: int
    category: str
    quantity: int = 1


@dataclass(frozen=True)
class InvoiceRequest:
    """Everything the provider needs to open a hosted checkout."""

    external_ref: str
    amount: int
    currency: str
    description: str
    success_url: str
    failure_url: str
    customer_name: str
    customer_email: str
    customer_phone: str = ""
    line_items: tuple[LineItem, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class InvoiceLookup:
    """An invoice found at the provider, with its current status."""

    invoice: Invoice
    status: InvoiceStatus


class PaymentGateway(ABC):
    """Interface for the external payment provider."""

    @abstractmethod
    def create_invoice(self, request: InvoiceRequest) -> Invoice:
        """Create a hosted invoice.

        Raises:
            PaymentProviderUnavailableError: On timeout, transport or provider error.
        """
        ...

    @abstractmethod
    def get_invoice_status(self, invoice_id: str) -> InvoiceStatus:
        """Return the provider's current status for an invoice.

        Raises:
            PaymentProviderUnavailableError: On timeout, transport or provider error.
        """
        ...

    @abstractmethod
    def find_invoice_by_reference(self, external_ref: str) -> InvoiceLookup | None:
        """Find the invoice opened for an external reference, or None if there is none.

        Recovers the linkage when invoice creation succeeded at the provider
        but the response never reached us.

        Raises:
            PaymentProviderUnavailableError: On timeout, transport or provider error.
        """
        ...

    @abstractmethod
    def expire_invoice(self, invoice_id: str) -> None:
        """Close an unpaid invoice so it can no longer be paid.

        Raises:
            PaymentProviderUnavailableError: On timeout, transport or provider
                error, including an invoice that is already paid.
        """
        ...


STATUS_MAP = {
    "PENDING": InvoiceStatus.PENDING,
    "PAID": InvoiceStatus.PAID,
    "SETTLED": InvoiceStatus.PAID,
    "EXPIRED": InvoiceStatus.EXPIRED,
}


def normalize_status(raw: str | None) -> InvoiceStatus:
    return STATUS_MAP.get((raw or "").upper(), InvoiceStatus.FAILED)


class XenditGateway(PaymentGateway):
    """Xendit invoices API over httpx."""

    def __init__(
        self,
        secret_key: str,
        base_url: str = "https://api.xendit.co",
        timeout: float = 10.0,
        invoice_duration: int = 86400,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._invoice_duration = invoice_duration
        self._http = http_client if http_client is not None else httpx.Client(
            base_url=base_url,
            auth=(secret_key, ""),
            timeout=timeout,
        )

    def create_invoice(self, request: InvoiceRequest) -> Invoice:
        body = {
            "external_id": request.external_ref,
            "amount": request.amount,
            "currency": request.currency,
            "description": request.description,
            "invoice_duration": self._invoice_duration,
            "success_redirect_url": request.success_url,
            "failure_redirect_url": request.failure_url,
            "customer": {
                "given_names": request.customer_name,
                "email": request.customer_email,
                "mobile_number": request.customer_phone,
            },
            "items": [
                {
                    "name": item.name,
                    "quantity": item.quantity,
                    "price": item.price,
                    "category": item.category,
                }
                for item in request.line_items
            ],
        }
        data = self._request(
            "POST",
            "/v2/invoices",
            json=body,
            headers={"X-IDEMPOTENCY-KEY": request.external_ref},
        )
        try:
            return Invoice(invoice_id=data["id"], invoice_url=data["invoice_url"])
        except KeyError as e:
            raise PaymentProviderUnavailableError("malformed invoice response") from e

    def get_invoice_status(self, invoice_id: str) -> InvoiceStatus:
        data = self._request("GET", f"/v2/invoices/{invoice_id}")
        return normalize_status(data.get("status"))

    def find_invoice_by_reference(self, external_ref: str) -> InvoiceLookup | None:
        data = self._request("GET", "/v2/invoices", params={"external_id": external_ref})
        if not isinstance(data, list):
            raise PaymentProviderUnavailableError("malformed invoice list")
        if not data:
            return None

        try:
            # Newest first; a paid invoice wins over any later retry.
            found = [(item, normalize_status(item.get("status"))) for item in data]
            item, status = next(
                ((item, status) for item, status in found if status is InvoiceStatus.PAID),
                found[0],
            )
            invoice = Invoice(invoice_id=item["id"], invoice_url=item.get("invoice_url"))
        except (KeyError, AttributeError) as e:
            raise PaymentProviderUnavailableError("malformed invoice list") from e
        return InvoiceLookup(invoice=invoice, status=status)

    def expire_invoice(self, invoice_id: str) -> None:
        self._request("POST", f"/invoices/{invoice_id}/expire!")

    def _request(self, method: str, url: str, **kwargs) -> dict | list:
        try:
            response = self._http.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            logger.warning("Payment provider timed out on %s %s", method, url)
            raise PaymentProviderUnavailableError("timeout") from e
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Payment provider returned %s on %s %s",
                e.response.status_code,
                method,
                url,
            )
            raise PaymentProviderUnavailableError(f"status {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Payment provider request failed: %s", e)
            raise PaymentProviderUnavailableError(str(e)) from e
