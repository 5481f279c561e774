import logging
from dataclasses import dataclass
from typing import Protocol

from httpx import Client, HTTPError, Response

from carelink.care_api.errors import (
    MalformedResponseError,
    NotAuthenticatedError,
    NotFoundError,
    ServerError,
    TransportError,
)
from carelink.config import settings

logger = logging.getLogger(__name__)


class Session(Protocol):
    def get_token(self) -> str | None: ...

    def get_user_info(self) -> dict | None: ...


@dataclass
class StaticSession:
    token: str | None = None
    user_info: dict | None = None

    def get_token(self) -> str | None:
        return self.token

    def get_user_info(self) -> dict | None:
        return self.user_info


def create_http_client(base_url: str | None = None, **kwargs) -> Client:
    return Client(base_url=base_url or settings.CARE_API_BASE_URL, **kwargs)


@dataclass
class CareApi:
    http_client: Client
    session: Session

    @property
    def headers(self):
        token = self.session.get_token()
        if not token:
            raise NotAuthenticatedError()
        return {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}

    def _request(self, method: str, url: str, json: dict | None = None):
        headers = self.headers

        try:
            response = self.http_client.request(method, url, headers=headers, json=json)
        except HTTPError as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        if response.is_success:
            if not response.content:
                return None
            try:
                return response.json()
            except ValueError as e:
                raise MalformedResponseError(f"{method} {url} returned a body that is not JSON") from e

        message = _error_message(response)
        logger.debug("%s %s returned %s: %s", method, url, response.status_code, message)

        if response.status_code in (401, 403):
            raise NotAuthenticatedError(message)
        if response.status_code == 404:
            raise NotFoundError(message)
        raise ServerError(message, status_code=response.status_code)


def _error_message(response: Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or f"Error with status: {response.status_code}"

    if isinstance(data, dict) and data.get("message"):
        return data["message"]
    return f"Error with status: {response.status_code}"
