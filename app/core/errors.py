from enum import Enum


class ErrorKind(str, Enum):
    MISSING_PARAMETER = "MissingParameter"
    INVALID_PARAMETER = "InvalidParameter"
    PAST_TIME = "PastTime"
    INSUFFICIENT_NOTICE = "InsufficientNotice"
    OUTSIDE_BOOKABLE_WINDOW = "OutsideBookableWindow"
    INVALID_SLOT = "InvalidSlot"
    EXTERNAL_SERVICE_FAILURE = "ExternalServiceFailure"


# HTTP status used when an error reaches the API boundary
STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.MISSING_PARAMETER: 400,
    ErrorKind.INVALID_PARAMETER: 400,
    ErrorKind.PAST_TIME: 422,
    ErrorKind.INSUFFICIENT_NOTICE: 422,
    ErrorKind.OUTSIDE_BOOKABLE_WINDOW: 422,
    ErrorKind.INVALID_SLOT: 409,
    ErrorKind.EXTERNAL_SERVICE_FAILURE: 502,
}


class BookingError(Exception):
    """
    Raised by the booking services for any rejected request or failed calendar call.
    Carries the error kind and a message that is safe to return to the client.
    """

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def status_code(self) -> int:
        return STATUS_CODES[self.kind]

    @classmethod
    def missing(cls, name: str) -> "BookingError":
        return cls(ErrorKind.MISSING_PARAMETER, f"Request is missing parameter: {name}")

    @classmethod
    def external(cls, message: str) -> "BookingError":
        return cls(ErrorKind.EXTERNAL_SERVICE_FAILURE, message)

    def __repr__(self) -> str:
        return f"BookingError({self.kind.value!r}, {self.message!r})"
