import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Event",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("registration_closes_at", models.DateTimeField(blank=True, null=True)),
                ("early_bird_starts_at", models.DateTimeField(blank=True, null=True)),
                ("early_bird_ends_at", models.DateTimeField(blank=True, null=True)),
                ("vanity_enabled", models.BooleanField(default=False)),
                ("vanity_premium", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Registration",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("category_id", models.CharField(max_length=64)),
                ("user_id", models.CharField(max_length=128)),
                ("registered_by_name", models.CharField(blank=True, default="", max_length=255)),
                ("is_proxy", models.BooleanField(default=False)),
                ("participant_name", models.CharField(max_length=255)),
                ("participant_email", models.EmailField(max_length=254)),
                ("participant_phone", models.CharField(blank=True, default="", max_length=32)),
                ("shirt_size", models.CharField(blank=True, default="", max_length=8)),
                ("emergency_contact_name", models.CharField(blank=True, default="", max_length=255)),
                ("emergency_contact_phone", models.CharField(blank=True, default="", max_length=32)),
                ("medical_notes", models.TextField(blank=True, default="")),
                ("base_price", models.PositiveIntegerField()),
                ("vanity_premium", models.PositiveIntegerField(default=0)),
                ("total_price", models.PositiveIntegerField()),
                ("requested_vanity_number", models.CharField(blank=True, max_length=16, null=True)),
                ("bib_number", models.CharField(blank=True, max_length=64, null=True)),
                ("credential_payload", models.TextField(blank=True, null=True)),
                ("credential_url", models.CharField(blank=True, max_length=500, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("paid", "Paid"),
                            ("free", "Free"),
                            ("failed", "Failed"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        max_length=16,
                    ),
                ),
                ("invoice_id", models.CharField(blank=True, max_length=128, null=True, unique=True)),
                ("invoice_url", models.URLField(blank=True, max_length=500, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="registrations",
                        to="registrations.event",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["event", "status"], name="registration_event_status_idx"),
                    models.Index(
                        fields=["user_id", "event", "category_id", "status"],
                        name="registration_owner_lookup_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Category",
            fields=[
                ("pk_id", models.BigAutoField(primary_key=True, serialize=False)),
                ("category_id", models.CharField(max_length=64)),
                ("name", models.CharField(max_length=255)),
                ("list_price", models.PositiveIntegerField()),
                ("early_bird_price", models.PositiveIntegerField(blank=True, null=True)),
                ("bib_format", models.CharField(default="{number}", max_length=64)),
                ("capacity", models.PositiveIntegerField(blank=True, null=True)),
                ("position", models.PositiveIntegerField(default=0)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="categories",
                        to="registrations.event",
                    ),
                ),
            ],
            options={
                "ordering": ["position", "pk_id"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("event", "category_id"), name="unique_category_per_event"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="BibReservation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("bib_number", models.CharField(max_length=64)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bib_reservations",
                        to="registrations.event",
                    ),
                ),
                (
                    "registration",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bib_reservation",
                        to="registrations.registration",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("event", "bib_number"), name="unique_bib_per_event"),
                ],
            },
        ),
        migrations.CreateModel(
            name="BibCounter",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("category_id", models.CharField(max_length=64)),
                ("value", models.PositiveIntegerField(default=0)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bib_counters",
                        to="registrations.event",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("event", "category_id"), name="unique_counter_per_category"
                    ),
                ],
            },
        ),
    ]
