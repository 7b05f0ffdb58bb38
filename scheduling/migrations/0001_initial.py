# Generated manually (initial migration).
import decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models

import parks.models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("parks", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="TimeSlotTemplate",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("start_time", models.CharField(max_length=5, validators=[parks.models.time_validator])),
                ("end_time", models.CharField(max_length=5, validators=[parks.models.time_validator])),
                ("days_of_week", models.JSONField(default=list)),
                ("valid_from", models.DateField()),
                ("valid_until", models.DateField(blank=True, null=True)),
                (
                    "ticket_limit",
                    models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)]),
                ),
                (
                    "price_adjustment",
                    models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=10),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "park",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="slot_templates",
                        to="parks.park",
                    ),
                ),
                (
                    "pricings",
                    models.ManyToManyField(blank=True, related_name="slot_templates", to="parks.pricing"),
                ),
            ],
            options={
                "ordering": ["park", "start_time", "end_time"],
                "indexes": [
                    models.Index(fields=["park", "valid_from"], name="idx_template_park_from"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("park", "days_of_week", "start_time", "end_time"),
                        name="unique_template_park_days_times",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(ticket_limit__gte=1),
                        name="template_ticket_limit_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="TimeSlotInstance",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("date", models.DateField()),
                ("start_time", models.CharField(max_length=5, validators=[parks.models.time_validator])),
                ("end_time", models.CharField(max_length=5, validators=[parks.models.time_validator])),
                ("ticket_limit", models.PositiveIntegerField()),
                ("available_tickets", models.PositiveIntegerField()),
                (
                    "price_adjustment",
                    models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=10),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "park",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="slot_instances",
                        to="parks.park",
                    ),
                ),
                (
                    "template",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="instances",
                        to="scheduling.timeslottemplate",
                    ),
                ),
            ],
            options={
                "ordering": ["date", "start_time", "end_time"],
                "indexes": [
                    models.Index(fields=["park", "date"], name="idx_instance_park_date"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(template__isnull=False),
                        fields=("template", "date"),
                        name="unique_instance_template_date",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(template__isnull=True),
                        fields=("park", "date", "start_time", "end_time"),
                        name="unique_autofill_instance_park_date_times",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(available_tickets__gte=0)
                        & models.Q(available_tickets__lte=models.F("ticket_limit")),
                        name="instance_available_within_limit",
                    ),
                ],
            },
        ),
    ]
