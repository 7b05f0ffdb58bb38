from __future__ import annotations


class SchedulingError(Exception):
    """Base error type for time-slot inventory errors."""


class InvalidInputError(SchedulingError):
    """Raised for malformed times/dates, non-positive quantities or bad ids."""


class NotFoundError(SchedulingError):
    """Raised when a park, template, pricing or instance does not exist."""


class ClosedDayError(SchedulingError):
    """Raised when the park is not open on the requested date."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class CapacityExceededError(SchedulingError):
    """Raised when an instance cannot cover the requested quantity."""

    def __init__(self, instance_id: int, requested: int, remaining: int) -> None:
        super().__init__(
            f"Not enough tickets left for this time slot ({remaining} remaining, {requested} requested)."
        )
        self.instance_id = instance_id
        self.requested = requested
        self.remaining = remaining


class ConcurrencyConflictError(SchedulingError):
    """Raised when a conditional counter update lost a race."""


class TemplateConflictError(InvalidInputError):
    """Raised when a template duplicates another one on a shared weekday."""


class TemplateInUseError(InvalidInputError):
    """Raised when deleting a template whose instances still carry holds."""


class BookingWindowError(InvalidInputError):
    """Raised when a slot is in the past or beyond the park's booking horizon."""


class InvalidTransitionError(InvalidInputError):
    """Raised when a cart line is moved to a state it cannot reach."""


class ParkNotFoundError(NotFoundError):
    def __init__(self, park_id) -> None:
        super().__init__("Park not found.")
        self.park_id = park_id


class PricingNotFoundError(NotFoundError):
    def __init__(self, pricing_id) -> None:
        super().__init__("Pricing not found.")
        self.pricing_id = pricing_id


class TemplateNotFoundError(NotFoundError):
    def __init__(self, template_id) -> None:
        super().__init__("Time slot template not found.")
        self.template_id = template_id


class InstanceNotFoundError(NotFoundError):
    def __init__(self, instance_id) -> None:
        super().__init__("Time slot not found.")
        self.instance_id = instance_id


class CartItemNotFoundError(NotFoundError):
    def __init__(self, item_id) -> None:
        super().__init__("Cart item not found.")
        self.item_id = item_id
