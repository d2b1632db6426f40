from __future__ import annotations

from collections.abc import Mapping
from typing import Any

GENERIC_ERROR_MESSAGE = (
    "An unexpected error occurred. Please try again or check the developer console for more details."
)


class StudioError(Exception):
    """Base class for errors that end a single submission."""


class MissingInputError(StudioError):
    """A required input is absent; raised before any network call."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing required input: {', '.join(self.missing)}")


class GenerationServiceError(StudioError):
    """The generation boundary failed (transport, HTTP status or malformed response)."""


class GenerationError(StudioError):
    """Every request of a fan-out failed."""


def _field(value: Any, name: str) -> Any:
    # A broken accessor on one field must not hide the other.
    try:
        if isinstance(value, Mapping):
            return value.get(name)
        return getattr(value, name, None)
    except Exception:
        return None


def parse_api_error(error: Any) -> str:
    """
    Turn anything that was raised or returned as an error into a displayable string.

    Order: exception message, `message` field, `error` field, plain string,
    then a generic fallback. Never raises.
    """
    try:
        if isinstance(error, BaseException):
            return str(error)

        if error is not None and not isinstance(error, str):
            message = _field(error, "message")
            if isinstance(message, str):
                return message
            err = _field(error, "error")
            if isinstance(err, str):
                return err

        if isinstance(error, str):
            return error
    except Exception:
        pass

    return GENERIC_ERROR_MESSAGE
