"""Domain exception definitions shared by services and API handlers."""

from __future__ import annotations

from http import HTTPStatus


class TransitInsightsError(Exception):
    """Base class for failures that map onto a client-visible error body."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InputValidationError(TransitInsightsError):
    """Raised when a required identifier or filter value is missing or malformed."""

    status_code = HTTPStatus.BAD_REQUEST


class NotFoundError(TransitInsightsError):
    """Raised when a referenced maintenance ticket does not exist."""

    status_code = HTTPStatus.NOT_FOUND


class ConflictError(TransitInsightsError):
    """Raised when a write targets a stale ticket version."""

    status_code = HTTPStatus.CONFLICT


class StoreUnavailableError(TransitInsightsError):
    """Raised when the record store cannot be read or persisted."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR


__all__ = [
    "TransitInsightsError",
    "InputValidationError",
    "NotFoundError",
    "ConflictError",
    "StoreUnavailableError",
]
