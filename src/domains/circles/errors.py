"""Exceptions raised by the circle classification engine.

Each error also derives from the matching builtin (``ValueError`` for bad
input, ``LookupError`` for missing records), so callers can catch either.
"""


class CircleEngineError(Exception):
    """Base class for circle engine failures."""


class ContactNotFoundError(CircleEngineError, LookupError):
    def __init__(self, contact_id: str, user_id: str | None = None) -> None:
        self.contact_id = contact_id
        self.user_id = user_id
        super().__init__(f"Contact not found: {contact_id}")


class InvalidCircleError(CircleEngineError, ValueError):
    def __init__(self, circle: object) -> None:
        self.circle = circle
        super().__init__(f"Invalid circle: {circle}")


class TransientSignalError(CircleEngineError, RuntimeError):
    """A signal source was unavailable while analyzing a single contact."""

    def __init__(self, source: str, contact_id: str, reason: str = "") -> None:
        self.source = source
        self.contact_id = contact_id
        message = f"Signal source '{source}' unavailable for contact {contact_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
