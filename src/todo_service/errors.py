from __future__ import annotations

from typing import Optional


# PUBLIC_INTERFACE
class TodoServiceError(Exception):
    """
    Base class for errors raised by the todo service.

    Each subclass carries the HTTP status code it maps to at the handler
    boundary.
    """

    status_code: int = 500

    def __init__(self, message: str, error: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.error = error


class ValidationError(TodoServiceError):
    """Malformed or missing client input."""

    status_code = 400


class NotFoundError(TodoServiceError):
    """The addressed todo does not exist."""

    status_code = 404


class StoreError(TodoServiceError):
    """Connectivity, timeout, write or decode failure in the document store."""

    status_code = 500


class ConfigError(TodoServiceError):
    """Invalid or missing configuration detected at startup."""
