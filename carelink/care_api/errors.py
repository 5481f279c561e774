from enum import Enum

# the server rejected an action as illegal for the current state
REFUSED_STATUS_CODES = [400, 409]


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    EMPTY_CART = "empty_cart"
    INVALID_STATE = "invalid_state"
    NOT_AUTHENTICATED = "not_authenticated"
    NOT_FOUND = "not_found"
    TRANSPORT = "transport"
    SERVER = "server"
    MALFORMED_RESPONSE = "malformed_response"


class CareError(Exception):
    kind: ErrorKind = ErrorKind.SERVER

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(CareError):
    kind = ErrorKind.VALIDATION

    def __init__(self, missing_fields: list[str], message: str = ""):
        super().__init__(message or f"Missing required fields: {', '.join(missing_fields)}")
        self.missing_fields = missing_fields


class EmptyCartError(CareError):
    kind = ErrorKind.EMPTY_CART

    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class InvalidStateError(CareError):
    kind = ErrorKind.INVALID_STATE

    def __init__(self, message: str, status: str | None = None):
        super().__init__(message)
        self.status = status


class NotAuthenticatedError(CareError):
    """Raised when there is no usable session.

    `pending_payload` keeps the request body that could not be sent so the
    caller can resubmit it after login.
    """

    kind = ErrorKind.NOT_AUTHENTICATED

    def __init__(self, message: str = "Not authenticated", pending_payload: dict | None = None):
        super().__init__(message)
        self.pending_payload = pending_payload


class NotFoundError(CareError):
    kind = ErrorKind.NOT_FOUND


class TransportError(CareError):
    kind = ErrorKind.TRANSPORT


class ServerError(CareError):
    kind = ErrorKind.SERVER

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(CareError):
    """A 2xx response whose body does not have the expected shape."""

    kind = ErrorKind.MALFORMED_RESPONSE
