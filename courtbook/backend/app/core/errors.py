"""Errors raised by the reservation engine.

Every error carries a machine readable ``code`` and an HTTP status so the
API layer can render it without knowing the individual types.
"""

from typing import Any

from fastapi import status


class ReservationError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def code(self) -> str:
        return self.__class__.__name__


class NotFound(ReservationError):
    """Referenced court or reservation does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class Conflict(ReservationError):
    """A booking rule was violated; ``rule`` names which one."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str, rule: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, {"rule": rule, **(details or {})})
        self.rule = rule


class InvalidInterval(ReservationError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class InvalidState(ReservationError):
    status_code = status.HTTP_409_CONFLICT


class PolicyViolation(ReservationError):
    status_code = status.HTTP_403_FORBIDDEN


__all__ = [
    "ReservationError",
    "NotFound",
    "Conflict",
    "InvalidInterval",
    "InvalidState",
    "PolicyViolation",
]
