from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("registrations", "0001_initial"),
    ]

    operations = [
        migrations.AddConstraint(
            model_name="event",
            constraint=models.CheckConstraint(
                condition=models.Q(early_bird_starts_at__isnull=True)
                | models.Q(early_bird_ends_at__isnull=True)
                | models.Q(early_bird_ends_at__gte=models.F("early_bird_starts_at")),
                name="early_bird_window_ordered",
            ),
        ),
        migrations.AddConstraint(
            model_name="category",
            constraint=models.CheckConstraint(
                condition=models.Q(early_bird_price__isnull=True)
                | models.Q(early_bird_price__lte=models.F("list_price")),
                name="early_bird_price_within_list_price",
            ),
        ),
        migrations.AddConstraint(
            model_name="category",
            constraint=models.CheckConstraint(
                condition=models.Q(bib_format__contains="{number}"),
                name="bib_format_has_number_placeholder",
            ),
        ),
    ]
