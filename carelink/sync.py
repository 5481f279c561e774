import logging
import threading
from typing import Protocol

from carelink.config import settings

logger = logging.getLogger(__name__)


class Refreshable(Protocol):
    @property
    def id(self) -> str | None: ...

    @property
    def is_terminal(self) -> bool: ...

    def refresh(self, silent: bool = False): ...


class RequestSyncLoop:
    """Re-fetches an order or emergency request on a fixed interval while it is open.

    Refreshes are silent. A tick that fires while a refresh for the same
    request is still running is skipped, and the loop ends by itself once the
    request reaches a terminal status.
    """

    _in_flight_lock = threading.Lock()
    _in_flight: set[tuple[str, str]] = set()

    def __init__(self, aggregate: Refreshable, interval: float | None = None):
        self.aggregate = aggregate
        self.interval = interval if interval is not None else settings.SYNC_INTERVAL_SECONDS

        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def _key(self) -> tuple[str, str]:
        return type(self.aggregate).__name__, str(self.aggregate.id)

    def start(self):
        if self.running:
            return
        if self.aggregate.is_terminal:
            logger.debug("%s %s is already final, not polling", *self._key)
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name=f"sync-{self._key[1]}", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None):
        self._stop_event.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
        self._thread = None

    def tick(self) -> bool:
        """
        Returns:
            bool: False if the tick was skipped because a refresh is in flight
        """
        key = self._key
        with self._in_flight_lock:
            if key in self._in_flight:
                logger.debug("Refresh of %s %s still in flight, skipping tick", *key)
                return False
            self._in_flight.add(key)

        try:
            self.aggregate.refresh(silent=True)
        except Exception:
            logger.exception("Background refresh of %s %s failed", *key)
        finally:
            with self._in_flight_lock:
                self._in_flight.discard(key)

        return True

    def _run(self):
        while not self._stop_event.wait(self.interval):
            self.tick()

            if self.aggregate.is_terminal:
                logger.info("%s %s reached a final status, polling stopped", *self._key)
                self._stop_event.set()

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
