import threading
import time

import httpx

from carelink.care_api.entities import CartLineItem, OrderStatus, PaymentMethod
from carelink.cart import CartAggregate
from carelink.config import settings
from carelink.orders import OrderAggregate
from carelink.sync import RequestSyncLoop


class BlockingAggregate:
    def __init__(self):
        self.id = "order-1"
        self.is_terminal = False
        self.refreshes = 0
        self.entered = threading.Event()
        self.release = threading.Event()

    def refresh(self, silent=False):
        assert silent
        self.entered.set()
        self.release.wait(5)
        self.refreshes += 1


class CountingAggregate:
    def __init__(self, terminal_after=None):
        self.id = "emergency-1"
        self.refreshes = 0
        self.terminal_after = terminal_after

    @property
    def is_terminal(self):
        return self.terminal_after is not None and self.refreshes >= self.terminal_after

    def refresh(self, silent=False):
        self.refreshes += 1


class FailingAggregate:
    def __init__(self):
        self.id = "order-9"
        self.is_terminal = False
        self.refreshes = 0

    def refresh(self, silent=False):
        self.refreshes += 1
        raise RuntimeError("unexpected payload")


def wait_until(condition, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.005)
    return False


def test_tick_skipped_while_refresh_in_flight():
    aggregate = BlockingAggregate()
    loop = RequestSyncLoop(aggregate, interval=60)

    worker = threading.Thread(target=loop.tick)
    worker.start()
    assert aggregate.entered.wait(2)

    assert loop.tick() is False

    aggregate.release.set()
    worker.join(2)
    assert aggregate.refreshes == 1
    assert loop.tick() is True


def test_two_loops_share_the_in_flight_guard():
    aggregate = BlockingAggregate()
    first = RequestSyncLoop(aggregate, interval=60)
    second = RequestSyncLoop(aggregate, interval=60)

    worker = threading.Thread(target=first.tick)
    worker.start()
    assert aggregate.entered.wait(2)

    assert second.tick() is False

    aggregate.release.set()
    worker.join(2)


def test_failing_refresh_releases_the_guard(caplog):
    aggregate = FailingAggregate()
    loop = RequestSyncLoop(aggregate, interval=60)

    assert loop.tick() is True
    assert loop.tick() is True

    assert aggregate.refreshes == 2
    assert "Background refresh of FailingAggregate order-9 failed" in caplog.text


def test_loop_keeps_running_after_a_failed_refresh():
    aggregate = FailingAggregate()

    with RequestSyncLoop(aggregate, interval=0.01) as loop:
        assert wait_until(lambda: aggregate.refreshes >= 3)
        assert loop.running


def test_loop_polls_until_stopped():
    aggregate = CountingAggregate()

    with RequestSyncLoop(aggregate, interval=0.01) as loop:
        assert loop.running
        assert wait_until(lambda: aggregate.refreshes >= 3)

    assert not loop.running
    refreshes = aggregate.refreshes
    time.sleep(0.05)
    assert aggregate.refreshes == refreshes


def test_loop_stops_at_terminal_status():
    aggregate = CountingAggregate(terminal_after=2)
    loop = RequestSyncLoop(aggregate, interval=0.01)

    loop.start()

    assert wait_until(lambda: not loop.running)
    assert aggregate.refreshes == 2
    loop.stop()


def test_terminal_request_is_not_polled():
    aggregate = CountingAggregate(terminal_after=0)
    loop = RequestSyncLoop(aggregate, interval=0.01)

    loop.start()

    assert not loop.running
    assert aggregate.refreshes == 0


def test_polling_order_survives_network_errors(cart_api, order_api, backend):
    cart = CartAggregate(cart_api, order_api)
    cart.add_item(CartLineItem(service_id="ecg", name="ECG", unit_price=150000))
    order = OrderAggregate(order_api, cart.checkout(PaymentMethod.CASH))
    backend.fail("GET", f"/orders/{order.id}", httpx.ConnectError("Network request failed"))

    with RequestSyncLoop(order, interval=0.01) as loop:
        assert wait_until(lambda: backend.count("GET", f"/orders/{order.id}") >= 2)
        assert loop.running

        backend.recover("GET", f"/orders/{order.id}")
        backend.orders[order.id]["status"] = "completed"

        assert wait_until(lambda: not loop.running)

    assert order.status is OrderStatus.COMPLETED
    assert order.last_error is None


def test_default_interval_comes_from_settings():
    loop = RequestSyncLoop(CountingAggregate())

    assert loop.interval == settings.SYNC_INTERVAL_SECONDS == 30


def test_polling_order_survives_unknown_status(cart_api, order_api, backend):
    cart = CartAggregate(cart_api, order_api)
    cart.add_item(CartLineItem(service_id="ecg", name="ECG", unit_price=150000))
    order = OrderAggregate(order_api, cart.checkout(PaymentMethod.CASH))
    backend.orders[order.id]["status"] = "shipping"

    with RequestSyncLoop(order, interval=0.01) as loop:
        assert wait_until(lambda: backend.count("GET", f"/orders/{order.id}") >= 2)
        assert loop.running
        assert order.status is OrderStatus.PENDING

        backend.orders[order.id]["status"] = "completed"

        assert wait_until(lambda: not loop.running)

    assert order.status is OrderStatus.COMPLETED
