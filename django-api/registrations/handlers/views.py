"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Map domain errors to HTTP responses
- Never contain business logic
- Never expose internal error details
"""

import hmac
import logging

from django.conf import settings
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from registrations import wiring
from registrations.domain import EventId, Participant, RegistrationId
from registrations.domain.errors import DomainError, ErrorCode, InvalidIdError
from registrations.handlers.serializers import (
    CheckoutRequestSerializer,
    PaymentNotificationSerializer,
    RegistrationSerializer,
)
from registrations.providers.payments import normalize_status
from registrations.services.checkout_service import CheckoutDraft

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ErrorCode.INVALID_ID: status.HTTP_400_BAD_REQUEST,
    ErrorCode.TERMS_NOT_ACCEPTED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_VANITY_NUMBER: status.HTTP_400_BAD_REQUEST,
    ErrorCode.EVENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.CATEGORY_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.REGISTRATION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.REGISTRATION_CLOSED: status.HTTP_409_CONFLICT,
    ErrorCode.PRICE_MISMATCH: status.HTTP_409_CONFLICT,
    ErrorCode.CATEGORY_FULL: status.HTTP_409_CONFLICT,
    ErrorCode.REGISTRATION_NOT_CANCELLABLE: status.HTTP_409_CONFLICT,
    ErrorCode.REGISTRATION_NOT_PENDING: status.HTTP_409_CONFLICT,
    ErrorCode.REGISTRATION_NOT_ALLOCATABLE: status.HTTP_409_CONFLICT,
    ErrorCode.PAYMENT_PROVIDER_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def error_response(error: DomainError) -> Response:
    return Response(
        {"code": error.code.value, "message": error.message},
        status=ERROR_STATUS.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
    )


def parse_registration_id(value: str) -> RegistrationId:
    try:
        return RegistrationId.from_string(value)
    except ValueError:
        raise InvalidIdError()


def parse_event_id(value: str) -> EventId:
    try:
        return EventId.from_string(value)
    except ValueError:
        raise InvalidIdError()


class CheckoutView(APIView):
    """Handler for POST /api/checkout"""

    permission_classes = [IsAuthenticated]

    def post(self, request: Request) -> Response:
        serializer = CheckoutRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        draft = CheckoutDraft(
            event_id=EventId(data["event_id"]),
            category_id=data["category_id"],
            user_id=str(request.user.pk),
            participant=Participant(**data["participant"]),
            client_total=data["client_total"],
            terms_accepted=data["terms_accepted"],
            vanity_number=data["vanity_number"] or None,
            is_proxy=data["is_proxy"],
            registered_by_name=request.user.get_full_name() or request.user.get_username(),
        )
        try:
            result = wiring.checkout_service().create_checkout(draft)
        except DomainError as e:
            return error_response(e)

        body = {"registration_id": str(result.registration_id)}
        if result.free:
            body["free"] = True
        else:
            body["redirect_url"] = result.redirect_url
        return Response(body, status=status.HTTP_201_CREATED)


class RegistrationSyncView(APIView):
    """Handler for GET /api/registrations/{registration_id}/sync"""

    permission_classes = [AllowAny]

    def get(self, request: Request, registration_id: str) -> Response:
        try:
            registration = wiring.reconciliation_service().sync(
                parse_registration_id(registration_id)
            )
        except DomainError as e:
            return error_response(e)
        return Response(RegistrationSerializer(registration).data)


class RegistrationCancelView(APIView):
    """Handler for POST /api/registrations/{registration_id}/cancel"""

    permission_classes = [IsAuthenticated]

    def post(self, request: Request, registration_id: str) -> Response:
        try:
            registration = wiring.checkout_service().cancel_registration(
                parse_registration_id(registration_id),
                actor_user_id=str(request.user.pk),
                is_operator=request.user.is_staff,
            )
        except DomainError as e:
            return error_response(e)
        return Response(RegistrationSerializer(registration).data)


class VanityAvailabilityView(APIView):
    """Handler for GET /api/events/{event_id}/vanity-numbers/{number}"""

    permission_classes = [AllowAny]

    def get(self, request: Request, event_id: str, number: str) -> Response:
        try:
            available = wiring.allocation_service().is_vanity_available(
                parse_event_id(event_id), number
            )
        except DomainError as e:
            return error_response(e)
        return Response({"number": number, "available": available})


class PaymentWebhookView(APIView):
    """Handler for POST /api/webhooks/payment

    Answers 200 for every verified delivery it has processed, including
    replays and unknown invoices, so the provider stops retrying.
    """

    authentication_classes = []
    permission_classes = [AllowAny]

    def post(self, request: Request) -> Response:
        if not self._token_valid(request):
            logger.warning("Payment webhook rejected: bad callback token")
            return Response({"code": "INVALID_CALLBACK_TOKEN"}, status=status.HTTP_401_UNAUTHORIZED)

        serializer = PaymentNotificationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        wiring.reconciliation_service().handle_notification(
            invoice_id=data["id"],
            status=normalize_status(data["status"]),
            external_ref=data.get("external_id") or None,
            invoice_url=data.get("invoice_url") or None,
        )
        return Response({"received": True})

    def _token_valid(self, request: Request) -> bool:
        expected = settings.PAYMENT_WEBHOOK_TOKEN
        received = request.headers.get("X-Callback-Token", "")
        return bool(expected) and hmac.compare_digest(received.encode(), expected.encode())
