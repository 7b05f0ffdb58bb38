from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Q

from parks.models import Park, Pricing, time_validator

from .errors import InvalidInputError
from .timeutils import validate_time_range


class TimeSlotTemplate(models.Model):
    """
    Recurring definition of a bookable window on some weekdays.

    days_of_week holds day numbers with Sunday == 0, kept sorted and unique.
    """

    park = models.ForeignKey(Park, on_delete=models.CASCADE, related_name="slot_templates")
    pricings = models.ManyToManyField(Pricing, related_name="slot_templates", blank=True)
    start_time = models.CharField(max_length=5, validators=[time_validator])
    end_time = models.CharField(max_length=5, validators=[time_validator])
    days_of_week = models.JSONField(default=list)
    valid_from = models.DateField()
    valid_until = models.DateField(null=True, blank=True)
    ticket_limit = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    price_adjustment = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["park", "start_time", "end_time"]
        constraints = [
            models.UniqueConstraint(
                fields=["park", "days_of_week", "start_time", "end_time"],
                name="unique_template_park_days_times",
            ),
            models.CheckConstraint(
                condition=Q(ticket_limit__gte=1),
                name="template_ticket_limit_positive",
            ),
        ]
        indexes = [
            models.Index(fields=["park", "valid_from"], name="idx_template_park_from"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.park} · {self.start_time}–{self.end_time} · days {self.days_of_week}"

    def is_active_on(self, value) -> bool:
        if value < self.valid_from:
            return False
        return self.valid_until is None or value <= self.valid_until

    def clean(self) -> None:
        super().clean()
        if self.start_time and self.end_time:
            try:
                validate_time_range(self.start_time, self.end_time)
            except InvalidInputError as exc:
                raise ValidationError({"end_time": str(exc)}) from exc
        if self.valid_from and self.valid_until and self.valid_from > self.valid_until:
            raise ValidationError({"valid_until": "validFrom must be before validUntil."})


class TimeSlotInstance(models.Model):
    """
    One sellable, date-stamped slot with its own ticket counter.

    template is null for blocks generated by auto-fill from working hours.
    """

    park = models.ForeignKey(Park, on_delete=models.CASCADE, related_name="slot_instances")
    template = models.ForeignKey(
        TimeSlotTemplate,
        on_delete=models.CASCADE,
        related_name="instances",
        null=True,
        blank=True,
    )
    date = models.DateField()
    start_time = models.CharField(max_length=5, validators=[time_validator])
    end_time = models.CharField(max_length=5, validators=[time_validator])
    ticket_limit = models.PositiveIntegerField()
    available_tickets = models.PositiveIntegerField()
    price_adjustment = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["date", "start_time", "end_time"]
        constraints = [
            models.UniqueConstraint(
                fields=["template", "date", "start_time", "end_time"],
                condition=Q(template__isnull=False),
                name="unique_instance_template_date_times",
            ),
            models.UniqueConstraint(
                fields=["park", "date", "start_time", "end_time"],
                condition=Q(template__isnull=True),
                name="unique_autofill_instance_park_date_times",
            ),
            models.CheckConstraint(
                condition=Q(available_tickets__gte=0) & Q(available_tickets__lte=F("ticket_limit")),
                name="instance_available_within_limit",
            ),
        ]
        indexes = [
            models.Index(fields=["park", "date"], name="idx_instance_park_date"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.park} · {self.date} · {self.start_time}–{self.end_time}"

    @property
    def is_auto_filled(self) -> bool:
        return self.template_id is None

    @property
    def booked_tickets(self) -> int:
        return self.ticket_limit - self.available_tickets
