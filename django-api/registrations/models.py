"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/.
"""

import uuid

from django.db import models


class Event(models.Model):
    """Persistence model for race events. Authored outside this service."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    registration_closes_at = models.DateTimeField(blank=True, null=True)
    early_bird_starts_at = models.DateTimeField(blank=True, null=True)
    early_bird_ends_at = models.DateTimeField(blank=True, null=True)
    vanity_enabled = models.BooleanField(default=False)
    vanity_premium = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(early_bird_starts_at__isnull=True)
                | models.Q(early_bird_ends_at__isnull=True)
                | models.Q(early_bird_ends_at__gte=models.F("early_bird_starts_at")),
                name="early_bird_window_ordered",
            ),
        ]

    def __str__(self) -> str:
        return self.name


class Category(models.Model):
    """Persistence model for an event's race categories."""

    pk_id = models.BigAutoField(primary_key=True)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="categories")
    category_id = models.CharField(max_length=64)
    name = models.CharField(max_length=255)
    list_price = models.PositiveIntegerField()
    early_bird_price = models.PositiveIntegerField(blank=True, null=True)
    bib_format = models.CharField(max_length=64, default="{number}")
    capacity = models.PositiveIntegerField(blank=True, null=True)
    position = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["position", "pk_id"]
        constraints = [
            models.UniqueConstraint(
                fields=["event", "category_id"], name="unique_category_per_event"
            ),
            models.CheckConstraint(
                condition=models.Q(early_bird_price__isnull=True)
                | models.Q(early_bird_price__lte=models.F("list_price")),
                name="early_bird_price_within_list_price",
            ),
            models.CheckConstraint(
                condition=models.Q(bib_format__contains="{number}"),
                name="bib_format_has_number_placeholder",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.event.name} - {self.name}"


class Registration(models.Model):
    """Persistence model for registrations."""

    class Status(models.TextChoices):
        PENDING = "pending"
        PAID = "paid"
        FREE = "free"
        FAILED = "failed"
        CANCELLED = "cancelled"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name="registrations")
    category_id = models.CharField(max_length=64)
    user_id = models.CharField(max_length=128)
    registered_by_name = models.CharField(max_length=255, blank=True, default="")
    is_proxy = models.BooleanField(default=False)

    participant_name = models.CharField(max_length=255)
    participant_email = models.EmailField()
    participant_phone = models.CharField(max_length=32, blank=True, default="")
    shirt_size = models.CharField(max_length=8, blank=True, default="")
    emergency_contact_name = models.CharField(max_length=255, blank=True, default="")
    emergency_contact_phone = models.CharField(max_length=32, blank=True, default="")
    medical_notes = models.TextField(blank=True, default="")

    base_price = models.PositiveIntegerField()
    vanity_premium = models.PositiveIntegerField(default=0)
    total_price = models.PositiveIntegerField()

    requested_vanity_number = models.CharField(max_length=16, blank=True, null=True)
    bib_number = models.CharField(max_length=64, blank=True, null=True)
    credential_payload = models.TextField(blank=True, null=True)
    credential_url = models.CharField(max_length=500, blank=True, null=True)

    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    invoice_id = models.CharField(max_length=128, blank=True, null=True, unique=True)
    invoice_url = models.URLField(max_length=500, blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    paid_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["event", "status"], name="registration_event_status_idx"),
            models.Index(
                fields=["user_id", "event", "category_id", "status"],
                name="registration_owner_lookup_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.participant_name} ({self.status})"


class BibReservation(models.Model):
    """Claim on a bib number within an event.

    The unique (event, bib_number) constraint is what makes bib numbers
    unique; the one-to-one on registration makes allocation single-shot.
    """

    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="bib_reservations")
    bib_number = models.CharField(max_length=64)
    registration = models.OneToOneField(
        Registration, on_delete=models.CASCADE, related_name="bib_reservation"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["event", "bib_number"], name="unique_bib_per_event"
            ),
        ]

    def __str__(self) -> str:
        return self.bib_number


class BibCounter(models.Model):
    """Per-(event, category) sequence for non-vanity bib numbers."""

    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="bib_counters")
    category_id = models.CharField(max_length=64)
    value = models.PositiveIntegerField(default=0)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["event", "category_id"], name="unique_counter_per_category"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.event_id}/{self.category_id}: {self.value}"
