"""Error taxonomy shared by the validation layer, the store and the API."""

from __future__ import annotations

from typing import List, Optional

from app.schemas import ErrorDetail


class ValidationError(ValueError):
    """Inbound data was malformed or out of range; carries field-level details."""

    def __init__(self, message: str, errors: Optional[List[ErrorDetail]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors: List[ErrorDetail] = list(errors or [])

    def to_detail(self) -> dict:
        return {
            "message": self.message,
            "errors": [error.model_dump() for error in self.errors],
        }


class NotFoundError(KeyError):
    """No reading exists for the requested identifier."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message.
        return self.message


class PersistenceError(RuntimeError):
    """The backing table rejected a write or could not be loaded."""
