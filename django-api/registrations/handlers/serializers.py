"""Serializers for request parsing and for rendering domain models."""

from rest_framework import serializers


class ParticipantSerializer(serializers.Serializer):
    name = serializers.CharField(min_length=2, max_length=255)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=32, allow_blank=True, default="")
    shirt_size = serializers.CharField(max_length=8, allow_blank=True, default="")
    emergency_contact_name = serializers.CharField(max_length=255, allow_blank=True, default="")
    emergency_contact_phone = serializers.CharField(max_length=32, allow_blank=True, default="")
    medical_notes = serializers.CharField(allow_blank=True, default="")


class CheckoutRequestSerializer(serializers.Serializer):
    """Body of POST /api/checkout.

    client_total is the price the form displayed; it is only compared with
    the server price, never charged.
    """

    event_id = serializers.UUIDField()
    category_id = serializers.CharField(max_length=64)
    participant = ParticipantSerializer()
    vanity_number = serializers.CharField(
        max_length=16, allow_blank=True, allow_null=True, default=None
    )
    client_total = serializers.DecimalField(max_digits=12, decimal_places=2)
    terms_accepted = serializers.BooleanField(default=False)
    is_proxy = serializers.BooleanField(default=False)


class RegistrationSerializer(serializers.Serializer):
    """Serializer for the Registration domain model."""

    registration_id = serializers.UUIDField(source="id.value")
    event_id = serializers.UUIDField(source="event_id.value")
    category_id = serializers.CharField()
    status = serializers.CharField(source="status.value")
    total_price = serializers.IntegerField(source="total_price.amount")
    requested_vanity_number = serializers.CharField(allow_null=True)
    bib_number = serializers.CharField(source="allocation.bib_number", default=None)
    credential_url = serializers.CharField(source="allocation.credential.image_url", default=None)
    paid_at = serializers.DateTimeField(allow_null=True)


class PaymentNotificationSerializer(serializers.Serializer):
    """Invoice callback body sent by the payment provider."""

    id = serializers.CharField(max_length=128)
    external_id = serializers.CharField(max_length=128, required=False, allow_blank=True)
    status = serializers.CharField(max_length=32)
    invoice_url = serializers.URLField(max_length=500, required=False, allow_blank=True)
