"""Raise bib counters to cover registrations that already hold bibs.

Counters are only ever raised, never lowered, so running this against a
live system cannot hand out a number twice.
"""

from django.core.management.base import BaseCommand
from django.db import transaction
from django.db.models import Count

from registrations.models import BibCounter, Registration

CONFIRMED = [Registration.Status.PAID, Registration.Status.FREE]


class Command(BaseCommand):
    help = "Seed per-category bib counters from allocated registrations."

    def add_arguments(self, parser):
        parser.add_argument("--event", help="Only seed counters for this event id.")

    def handle(self, *args, **options):
        registrations = Registration.objects.filter(
            status__in=CONFIRMED, bib_number__isnull=False
        )
        if options["event"]:
            registrations = registrations.filter(event_id=options["event"])

        totals = registrations.values("event_id", "category_id").annotate(allocated=Count("id"))

        seeded = 0
        for row in totals:
            with transaction.atomic():
                counter, _ = BibCounter.objects.select_for_update().get_or_create(
                    event_id=row["event_id"], category_id=row["category_id"]
                )
                if counter.value < row["allocated"]:
                    counter.value = row["allocated"]
                    counter.save(update_fields=["value"])
                    seeded += 1
                    self.stdout.write(
                        f"Set {row['event_id']}_{row['category_id']} -> {counter.value}"
                    )

        self.stdout.write(self.style.SUCCESS(f"Seeded {seeded} counter(s)."))
