from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q

from parks.models import Pricing
from scheduling.models import TimeSlotInstance


class Cart(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        CONFIRMED = "confirmed", "Confirmed"
        CANCELLED = "cancelled", "Cancelled"

    class PaymentStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        PAID = "paid", "Paid"
        FAILED = "failed", "Failed"
        REFUNDED = "refunded", "Refunded"

    class PaymentMethod(models.TextChoices):
        CREDIT_CARD = "credit_card", "Credit card"
        PAYPAL = "paypal", "PayPal"
        CRYPTO = "crypto", "Crypto"

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="carts")
    status = models.CharField(max_length=12, choices=Status.choices, default=Status.PENDING)
    payment_status = models.CharField(max_length=12, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)
    payment_method = models.CharField(max_length=16, choices=PaymentMethod.choices, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user"],
                condition=Q(status="pending"),
                name="unique_pending_cart_per_user",
            )
        ]
        indexes = [
            models.Index(fields=["status", "updated_at"], name="idx_cart_status_updated"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Cart {self.pk} · {self.user} · {self.status}"

    @property
    def total_amount(self) -> Decimal:
        return sum(
            (item.total_price for item in self.items.all() if item.status in CartItem.LIVE_STATUSES),
            Decimal("0.00"),
        )


class CartItem(models.Model):
    """
    A quantity of tickets held against one time-slot instance.

    held -> confirmed | released
    confirmed -> cancelled
    """

    class Status(models.TextChoices):
        HELD = "held", "Held"
        CONFIRMED = "confirmed", "Confirmed"
        RELEASED = "released", "Released"
        CANCELLED = "cancelled", "Cancelled"

    TRANSITIONS = {
        Status.HELD: {Status.CONFIRMED, Status.RELEASED},
        Status.CONFIRMED: {Status.CANCELLED},
    }
    LIVE_STATUSES = {Status.HELD, Status.CONFIRMED}
    BOOKING_STATUSES = {Status.CONFIRMED, Status.CANCELLED}

    cart = models.ForeignKey(Cart, on_delete=models.CASCADE, related_name="items")
    instance = models.ForeignKey(TimeSlotInstance, on_delete=models.PROTECT, related_name="cart_items")
    pricing = models.ForeignKey(Pricing, on_delete=models.PROTECT, related_name="cart_items")
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(max_length=12, choices=Status.choices, default=Status.HELD)
    ticket_code = models.CharField(max_length=32, unique=True, null=True, blank=True)
    used = models.BooleanField(default=False)
    used_at = models.DateTimeField(null=True, blank=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    released_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(condition=Q(quantity__gte=1), name="cart_item_quantity_positive"),
        ]
        indexes = [
            models.Index(fields=["cart", "status"], name="idx_cart_item_cart_status"),
            models.Index(fields=["instance", "status"], name="idx_cart_item_instance_status"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.quantity} × {self.pricing} · {self.instance} · {self.status}"

    @property
    def total_price(self) -> Decimal:
        return self.unit_price * self.quantity

    def can_transition_to(self, status: str) -> bool:
        return status in self.TRANSITIONS.get(self.status, set())
