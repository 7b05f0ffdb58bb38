from __future__ import annotations

from decimal import Decimal

from scheduling.errors import InvalidInputError, ParkNotFoundError, PricingNotFoundError
from scheduling.inputs import coerce_id

from .models import Park, Pricing


def get_park(park_id) -> Park:
    """
    Park profile lookup used by the scheduling core.
    Inactive parks are treated as unknown.
    """
    pk = coerce_id(park_id, "park")
    park = Park.objects.filter(pk=pk, is_active=True).first()
    if park is None:
        raise ParkNotFoundError(park_id)
    return park


def get_pricing(pricing_id) -> Pricing:
    pk = coerce_id(pricing_id, "pricing")
    pricing = Pricing.objects.select_related("park").filter(pk=pk).first()
    if pricing is None:
        raise PricingNotFoundError(pricing_id)
    return pricing


def unit_price(pricing: Pricing, price_adjustment: Decimal) -> Decimal:
    """
    Base price plus the slot's signed adjustment.
    """
    price = Decimal(pricing.price) + Decimal(price_adjustment or 0)
    if price < 0:
        raise InvalidInputError("Price adjustment results in a negative ticket price.")
    return price.quantize(Decimal("0.01"))
