import logging

from carelink.care_api.entities import Order, OrderStatus
from carelink.care_api.errors import REFUSED_STATUS_CODES, CareError, InvalidStateError, ServerError
from carelink.care_api.orders import CareApiOrder

logger = logging.getLogger(__name__)


class OrderAggregate:
    """Tracks one checked-out order.

    Status changes come from the server; the client only gates cancellation.
    """

    def __init__(self, order_api: CareApiOrder, order: Order):
        self.order_api = order_api
        self.order = order
        self.last_error: CareError | None = None

    @classmethod
    def fetch(cls, order_api: CareApiOrder, order_id: str) -> "OrderAggregate":
        return cls(order_api, order_api.get_order_by_id(order_id))

    @property
    def id(self) -> str:
        return self.order.id

    @property
    def status(self) -> OrderStatus:
        return self.order.status

    @property
    def is_terminal(self) -> bool:
        return self.order.status.is_terminal

    @property
    def can_cancel(self) -> bool:
        return self.order.status.can_cancel

    def refresh(self, silent: bool = False) -> Order:
        try:
            if silent:
                self.order = self.order_api.fetch_order(self.order.id)
            else:
                self.order = self.order_api.get_order_by_id(self.order.id)
        except CareError as e:
            if not silent:
                self.last_error = e
                raise
            logger.warning("Silent refresh of order %s failed: %s", self.order.id, e)
            return self.order

        self.last_error = None
        return self.order

    def cancel(self) -> Order:
        if not self.can_cancel:
            raise InvalidStateError(
                f"Order {self.order.id} can only be cancelled while pending", status=self.order.status.value
            )

        try:
            self.order_api.cancel_order(self.order.id)
        except ServerError as e:
            if e.status_code not in REFUSED_STATUS_CODES:
                raise
            self.refresh(silent=True)
            raise InvalidStateError(
                f"Order {self.order.id} can no longer be cancelled: {e.message}", status=self.order.status.value
            ) from e

        logger.info("Cancelled order %s", self.order.id)
        return self.refresh(silent=True)

    def mark_paid(self, payment_result: dict) -> Order:
        if self.order.is_paid:
            raise InvalidStateError(f"Order {self.order.id} is already paid", status=self.order.status.value)
        if self.order.status is OrderStatus.CANCELLED:
            raise InvalidStateError(f"Order {self.order.id} is cancelled", status=self.order.status.value)

        self.order = self.order_api.update_order_to_paid(self.order.id, payment_result)
        logger.info("Order %s marked as paid", self.order.id)
        return self.order


def list_orders(order_api: CareApiOrder) -> list[OrderAggregate]:
    return [OrderAggregate(order_api, order) for order in order_api.get_my_orders()]
