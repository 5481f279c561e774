import logging
import time
from datetime import datetime
from functools import wraps

from carelink.care_api.errors import MalformedResponseError, ServerError
from carelink.config import settings

logger = logging.getLogger(__name__)

RETRY_STATUS_CODES = [500, 502, 503]


def retry_request(retries=None, delay=None):
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            attempts = retries if retries is not None else settings.REQUEST_RETRIES
            wait = delay if delay is not None else settings.RETRY_DELAY_SECONDS

            for attempt in range(attempts):
                try:
                    return func(*args, **kwargs)
                except ServerError as e:
                    if e.status_code not in RETRY_STATUS_CODES or attempt + 1 == attempts:
                        raise
                    logger.warning("Retrying %s... (%s / %s) wait for %s seconds", func.__name__, attempt + 1, attempts, wait)
                    time.sleep(wait)

            return func(*args, **kwargs)

        return wrapper

    return decorator


def parse_response(func):
    """Turns shape errors while parsing a response body into MalformedResponseError."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise MalformedResponseError(f"Unexpected payload in {func.__name__}: {e!r}") from e

    return wrapper


def format_currency(amount: int | float) -> str:
    """1234567 -> '1,234,567'"""
    return f"{int(amount):,}"


def parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))
