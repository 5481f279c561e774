import json
import re

import httpx
import pytest

from carelink.care_api.base import StaticSession
from carelink.care_api.cart import CareApiCart
from carelink.care_api.emergency import CareApiEmergency
from carelink.care_api.orders import CareApiOrder
from carelink.care_api.relatives import CareApiRelatives
from carelink.config import settings

TOKEN = "test-token"


class FakeBackend:
    """In-memory stand-in for the healthcare REST backend."""

    def __init__(self):
        self.cart: dict[str, dict] = {}
        self.cart_exists = True
        self.orders: dict[str, dict] = {}
        self.emergencies: dict[str, dict] = {}
        self.relatives: list[dict] = []

        self.calls: list[tuple[str, str]] = []
        self.failures: dict[tuple[str, str], int | Exception] = {}

    def fail(self, method: str, path: str, error: int | Exception):
        self.failures[(method, path)] = error

    def recover(self, method: str, path: str):
        self.failures.pop((method, path), None)

    def count(self, method: str, path: str) -> int:
        return self.calls.count((method, path))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        method, path = request.method, request.url.path
        self.calls.append((method, path))

        failure = self.failures.get((method, path))
        if isinstance(failure, Exception):
            raise failure
        if failure is not None:
            return httpx.Response(failure, json={"message": f"Injected failure {failure}"})

        if request.headers.get("Authorization") != f"Bearer {TOKEN}":
            return httpx.Response(401, json={"message": "Not authorized, token failed"})

        body = json.loads(request.content) if request.content else {}
        return self._route(method, path, body)

    def _route(self, method: str, path: str, body: dict) -> httpx.Response:
        if path == "/cart" and method == "GET":
            if not self.cart_exists:
                return httpx.Response(404, json={"message": "Cart not found"})
            return httpx.Response(200, json=self._cart_body())

        if path == "/cart/add" and method == "POST":
            self.cart_exists = True
            self.cart[body["service"]] = body
            return httpx.Response(201, json=self._cart_body())

        if path == "/cart/update" and method == "PUT":
            if body["service"] not in self.cart:
                return httpx.Response(404, json={"message": "Item not found in cart"})
            self.cart[body["service"]]["quantity"] = body["quantity"]
            return httpx.Response(200, json=self._cart_body())

        if path == "/cart/remove" and method == "DELETE":
            if body["service"] not in self.cart:
                return httpx.Response(404, json={"message": "Item not found in cart"})
            del self.cart[body["service"]]
            return httpx.Response(200, json=self._cart_body())

        if path == "/cart/clear" and method == "DELETE":
            self.cart.clear()
            return httpx.Response(200, json={"message": "Cart cleared"})

        if path == "/orders" and method == "POST":
            return self._create_order(body)

        if path == "/orders" and method == "GET":
            return httpx.Response(200, json=list(self.orders.values()))

        if match := re.fullmatch(r"/orders/([^/]+)(/cancel|/pay)?", path):
            return self._order_route(method, match.group(1), match.group(2), body)

        if path == "/emergency" and method == "POST":
            emergency_id = f"emergency-{len(self.emergencies) + 1}"
            raw_emergency = {**body, "_id": emergency_id, "createdAt": "2026-10-19T08:00:00.000Z"}
            self.emergencies[emergency_id] = raw_emergency
            return httpx.Response(201, json=raw_emergency)

        if path == "/emergency" and method == "GET":
            return httpx.Response(200, json=list(self.emergencies.values()))

        if match := re.fullmatch(r"/emergency/([^/]+)", path):
            raw_emergency = self.emergencies.get(match.group(1))
            if raw_emergency is None:
                return httpx.Response(404, json={"message": "Emergency request not found"})
            if method == "DELETE":
                if raw_emergency.get("status") not in ("pending", "requested"):
                    return httpx.Response(400, json={"message": "Emergency request cannot be cancelled"})
                raw_emergency["status"] = "cancelled"
            return httpx.Response(200, json=raw_emergency)

        if path == "/relatives" and method == "GET":
            return httpx.Response(200, json=self.relatives)

        if match := re.fullmatch(r"/relatives/([^/]+)", path):
            for raw_relative in self.relatives:
                if raw_relative["_id"] == match.group(1):
                    return httpx.Response(200, json=raw_relative)
            return httpx.Response(404, json={"message": "Relative not found"})

        return httpx.Response(404, json={"message": f"No route for {method} {path}"})

    def _cart_body(self) -> dict:
        items = list(self.cart.values())
        return {"items": items, "totalPrice": sum(item["price"] * item["quantity"] for item in items)}

    def _create_order(self, body: dict) -> httpx.Response:
        if not self.cart:
            return httpx.Response(400, json={"message": "No order items"})

        items = [dict(item) for item in self.cart.values()]
        subtotal = sum(item["price"] * item["quantity"] for item in items)
        order_id = f"order-{len(self.orders) + 1}"
        raw_order = {
            "_id": order_id,
            "items": items,
            "paymentMethod": body["paymentMethod"],
            "taxPrice": subtotal // 10,
            "totalPrice": subtotal + subtotal // 10,
            "isPaid": False,
            "status": "pending",
            "createdAt": "2026-10-19T08:00:00.000Z",
        }
        self.orders[order_id] = raw_order
        return httpx.Response(201, json=raw_order)

    def _order_route(self, method: str, order_id: str, action: str | None, body: dict) -> httpx.Response:
        raw_order = self.orders.get(order_id)
        if raw_order is None:
            return httpx.Response(404, json={"message": "Order not found"})

        if action == "/cancel" and method == "PUT":
            if raw_order["status"] != "pending":
                return httpx.Response(400, json={"message": "Order cannot be cancelled"})
            raw_order["status"] = "cancelled"
        elif action == "/pay" and method == "PUT":
            raw_order["isPaid"] = True
            raw_order["paidAt"] = body.get("update_time") or "2026-10-19T09:00:00.000Z"

        return httpx.Response(200, json=raw_order)


@pytest.fixture(autouse=True)
def no_retry_delay(monkeypatch):
    monkeypatch.setattr(settings, "RETRY_DELAY_SECONDS", 0)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def user_info():
    return {
        "name": "Nguyen Van An",
        "age": 34,
        "phone": "0901234567",
        "address": "12 Le Loi, District 1, Ho Chi Minh City",
        "nationalId": "079123456789",
    }


@pytest.fixture
def session(user_info):
    return StaticSession(token=TOKEN, user_info=user_info)


@pytest.fixture
def http_client(backend):
    with httpx.Client(base_url="https://care.test", transport=httpx.MockTransport(backend)) as client:
        yield client


@pytest.fixture
def cart_api(http_client, session):
    return CareApiCart(http_client=http_client, session=session)


@pytest.fixture
def order_api(http_client, session):
    return CareApiOrder(http_client=http_client, session=session)


@pytest.fixture
def emergency_api(http_client, session):
    return CareApiEmergency(http_client=http_client, session=session)


@pytest.fixture
def relatives_api(http_client, session):
    return CareApiRelatives(http_client=http_client, session=session)
