from carelink.care_api.base import CareApi
from carelink.care_api.cart import parse_line_item
from carelink.care_api.entities import Order, OrderStatus, PaymentMethod
from carelink.utils import parse_datetime, parse_response, retry_request


@parse_response
def parse_order(raw_order: dict) -> Order:
    return Order(
        id=str(raw_order.get("_id") or raw_order["id"]),
        items=[parse_line_item(raw_item) for raw_item in raw_order.get("items") or []],
        payment_method=PaymentMethod(raw_order["paymentMethod"]),
        total_price=int(raw_order.get("totalPrice") or 0),
        tax_price=int(raw_order.get("taxPrice") or 0),
        is_paid=bool(raw_order.get("isPaid")),
        status=OrderStatus(raw_order["status"]),
        created_at=parse_datetime(raw_order.get("createdAt")),
        paid_at=parse_datetime(raw_order.get("paidAt")),
        completed_at=parse_datetime(raw_order.get("completedAt")),
        note=raw_order.get("note"),
    )


@parse_response
def parse_orders(raw_orders: list) -> list[Order]:
    return [parse_order(raw_order) for raw_order in raw_orders or []]


class CareApiOrder(CareApi):

    def create_order(self, payment_method: PaymentMethod) -> Order:
        raw_order = self._request("POST", "/orders", json={"paymentMethod": payment_method.value})
        return parse_order(raw_order)

    @retry_request()
    def get_my_orders(self) -> list[Order]:
        return parse_orders(self._request("GET", "/orders"))

    @retry_request()
    def get_order_by_id(self, order_id: str) -> Order:
        return self.fetch_order(order_id)

    def fetch_order(self, order_id: str) -> Order:
        """Single attempt, for background polling."""
        raw_order = self._request("GET", f"/orders/{order_id}")
        return parse_order(raw_order)

    def update_order_to_paid(self, order_id: str, payment_result: dict) -> Order:
        raw_order = self._request("PUT", f"/orders/{order_id}/pay", json=payment_result)
        return parse_order(raw_order)

    def cancel_order(self, order_id: str):
        self._request("PUT", f"/orders/{order_id}/cancel")
