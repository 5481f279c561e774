"""Price arithmetic for cart line items and emergency add-ons.

All amounts are plain VND integers; VND has no subunit so tax is truncated
to a whole number.
"""
from typing import Iterable, Protocol

TAX_RATE_PERCENT = 10


class PricedItem(Protocol):
    unit_price: int
    quantity: int


class PricedService(Protocol):
    price: int


def subtotal(items: Iterable[PricedItem]) -> int:
    return sum(item.unit_price * item.quantity for item in items)


def tax(amount: int) -> int:
    return amount * TAX_RATE_PERCENT // 100


def total(items: Iterable[PricedItem]) -> int:
    items_subtotal = subtotal(items)
    return items_subtotal + tax(items_subtotal)


def services_cost(selected_services: Iterable[PricedService]) -> int:
    return sum(service.price for service in selected_services)


def emergency_total(base_cost: int, selected_services: Iterable[PricedService]) -> int:
    return base_cost + services_cost(selected_services)
