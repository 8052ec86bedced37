"""Domain error codes for the registrations module."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    INVALID_ID = "INVALID_ID"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    CATEGORY_NOT_FOUND = "CATEGORY_NOT_FOUND"
    REGISTRATION_NOT_FOUND = "REGISTRATION_NOT_FOUND"
    REGISTRATION_CLOSED = "REGISTRATION_CLOSED"
    PRICE_MISMATCH = "PRICE_MISMATCH"
    TERMS_NOT_ACCEPTED = "TERMS_NOT_ACCEPTED"
    INVALID_VANITY_NUMBER = "INVALID_VANITY_NUMBER"
    CATEGORY_FULL = "CATEGORY_FULL"
    REGISTRATION_NOT_CANCELLABLE = "REGISTRATION_NOT_CANCELLABLE"
    REGISTRATION_NOT_PENDING = "REGISTRATION_NOT_PENDING"
    REGISTRATION_NOT_ALLOCATABLE = "REGISTRATION_NOT_ALLOCATABLE"
    PAYMENT_PROVIDER_UNAVAILABLE = "PAYMENT_PROVIDER_UNAVAILABLE"
    ALLOCATION_FAILED = "ALLOCATION_FAILED"


@dataclass(frozen=True)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class InvalidIdError(DomainError):
    """Raised when an identifier is malformed."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_ID,
            message="Invalid ID format",
        )


class EventNotFoundError(DomainError):
    """Raised when an event is not found."""

    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.EVENT_NOT_FOUND,
            message="Event not found",
        )
        self.event_id = event_id


class CategoryNotFoundError(DomainError):
    """Raised when a category does not exist on the event."""

    def __init__(self, category_id: str) -> None:
        super().__init__(
            code=ErrorCode.CATEGORY_NOT_FOUND,
            message="Category not found for this event",
        )
        self.category_id = category_id


class RegistrationNotFoundError(DomainError):
    """Raised when a registration is not found (or not visible to the caller)."""

    def __init__(self, registration_id: str) -> None:
        super().__init__(
            code=ErrorCode.REGISTRATION_NOT_FOUND,
            message="Registration not found",
        )
        self.registration_id = registration_id


class RegistrationClosedError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.REGISTRATION_CLOSED,
            message="Registration for this event is closed",
        )


class PriceMismatchError(DomainError):
    """Raised when the client-computed price disagrees with the server price."""

    def __init__(self, expected: int, submitted: object) -> None:
        super().__init__(
            code=ErrorCode.PRICE_MISMATCH,
            message="The price has changed. Refresh the page and try again",
        )
        self.expected = expected
        self.submitted = submitted


class TermsNotAcceptedError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.TERMS_NOT_ACCEPTED,
            message="You must accept the terms and waiver",
        )


class InvalidVanityNumberError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_VANITY_NUMBER,
            message="Vanity number must contain only digits",
        )


class CategoryFullError(DomainError):
    def __init__(self, category_id: str) -> None:
        super().__init__(
            code=ErrorCode.CATEGORY_FULL,
            message="This category is full",
        )
        self.category_id = category_id


class RegistrationNotCancellableError(DomainError):
    """Raised when cancelling a registration that is no longer pending."""

    def __init__(self, registration_id: str) -> None:
        super().__init__(
            code=ErrorCode.REGISTRATION_NOT_CANCELLABLE,
            message="Only pending registrations can be cancelled",
        )
        self.registration_id = registration_id


class RegistrationNotPendingError(DomainError):
    """Raised when checkout loses its registration to a concurrent cancel or failure."""

    def __init__(self, registration_id: str) -> None:
        super().__init__(
            code=ErrorCode.REGISTRATION_NOT_PENDING,
            message="Registration is no longer awaiting payment. Please start again",
        )
        self.registration_id = registration_id


class RegistrationNotAllocatableError(DomainError):
    """Raised when allocating a bib for a registration that is not paid or free."""

    def __init__(self, registration_id: str) -> None:
        super().__init__(
            code=ErrorCode.REGISTRATION_NOT_ALLOCATABLE,
            message="Registration is not confirmed",
        )
        self.registration_id = registration_id


class PaymentProviderUnavailableError(DomainError):
    """Raised when the payment provider times out or errors."""

    def __init__(self, detail: str = "") -> None:
        super().__init__(
            code=ErrorCode.PAYMENT_PROVIDER_UNAVAILABLE,
            message="Payment service is unavailable. Please try again",
        )
        self.detail = detail


class AllocationFailedError(DomainError):
    """Raised when a bib or credential could not be produced. Retryable."""

    def __init__(self, registration_id: str, detail: str = "") -> None:
        super().__init__(
            code=ErrorCode.ALLOCATION_FAILED,
            message="Bib assignment is in progress",
        )
        self.registration_id = registration_id
        self.detail = detail
