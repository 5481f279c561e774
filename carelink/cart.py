import logging
from contextlib import contextmanager

from carelink import pricing
from carelink.care_api.cart import CareApiCart
from carelink.care_api.entities import CartLineItem, Order, PaymentMethod
from carelink.care_api.errors import (
    CareError,
    EmptyCartError,
    InvalidStateError,
    NotAuthenticatedError,
    NotFoundError,
    ValidationError,
)
from carelink.care_api.orders import CareApiOrder
from carelink.config import settings
from carelink.utils import format_currency

logger = logging.getLogger(__name__)


class CartAggregate:
    """Client-side view of the account's cart.

    `items` is only ever replaced by a full reload from the server; every
    mutation is sent to the backend and followed by `reload()`, never applied
    locally.
    """

    def __init__(self, cart_api: CareApiCart, order_api: CareApiOrder, max_items: int | None = None):
        self.cart_api = cart_api
        self.order_api = order_api
        self.max_items = max_items if max_items is not None else settings.MAX_CART_ITEMS

        self.items: dict[str, CartLineItem] = {}
        self.loaded = False
        self.updating = False

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def subtotal(self) -> int:
        return pricing.subtotal(self.items.values())

    @property
    def tax(self) -> int:
        return pricing.tax(self.subtotal)

    @property
    def total(self) -> int:
        return pricing.total(self.items.values())

    def get(self, service_id: str) -> CartLineItem | None:
        return self.items.get(service_id)

    def reload(self) -> dict[str, CartLineItem]:
        line_items = self.cart_api.get_cart()
        self.items = {item.service_id: item for item in line_items}
        self.loaded = True
        return self.items

    def add_item(self, item: CartLineItem) -> dict[str, CartLineItem]:
        if item.quantity < 1 or item.unit_price < 0:
            raise ValidationError(["quantity" if item.quantity < 1 else "unit_price"])

        self._ensure_loaded()
        if item.service_id not in self.items and len(self.items) >= self.max_items:
            raise ValidationError(["items"], f"Cart can hold at most {self.max_items} services")

        with self._mutation():
            self.cart_api.add_to_cart(item)
            logger.info("Added service %s x%s to cart", item.service_id, item.quantity)
            return self.reload()

    def set_quantity(self, service_id: str, new_quantity: int) -> dict[str, CartLineItem]:
        self._ensure_loaded()
        if service_id not in self.items:
            raise NotFoundError(f"Service {service_id} is not in the cart")

        if new_quantity <= 0:
            return self.remove_item(service_id)

        with self._mutation():
            self.cart_api.update_cart_item(service_id, new_quantity)
            logger.info("Set quantity of service %s to %s", service_id, new_quantity)
            return self.reload()

    def increment(self, service_id: str) -> dict[str, CartLineItem]:
        current = self._require(service_id)
        return self.set_quantity(service_id, current.quantity + 1)

    def decrement(self, service_id: str) -> dict[str, CartLineItem]:
        current = self._require(service_id)
        return self.set_quantity(service_id, current.quantity - 1)

    def remove_item(self, service_id: str) -> dict[str, CartLineItem]:
        with self._mutation():
            try:
                self.cart_api.remove_from_cart(service_id)
                logger.info("Removed service %s from cart", service_id)
            except NotFoundError:
                logger.debug("Service %s was not in the cart", service_id)
            return self.reload()

    def checkout(self, payment_method: PaymentMethod) -> Order:
        self._ensure_loaded()
        if self.is_empty:
            raise EmptyCartError()

        with self._mutation():
            try:
                order = self.order_api.create_order(payment_method)
            except NotAuthenticatedError as e:
                raise NotAuthenticatedError(e.message, pending_payload={"paymentMethod": payment_method.value}) from e

            logger.info("Created order %s (%s, total=%s VND)", order.id, payment_method.value, format_currency(order.total_price))

            # order creation and cart clearing are separate calls; a failed clear leaves stale items
            try:
                self.cart_api.clear_cart()
                self.reload()
            except CareError as e:
                logger.warning("Order %s was created but the cart could not be cleared: %s", order.id, e)

        return order

    def _require(self, service_id: str) -> CartLineItem:
        self._ensure_loaded()
        item = self.items.get(service_id)
        if item is None:
            raise NotFoundError(f"Service {service_id} is not in the cart")
        return item

    def _ensure_loaded(self):
        if not self.loaded:
            self.reload()

    @contextmanager
    def _mutation(self):
        if self.updating:
            raise InvalidStateError("Another cart update is still in progress")

        self.updating = True
        try:
            yield
        finally:
            self.updating = False
