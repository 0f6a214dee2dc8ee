"""
RepackHub — Error taxonomy

Store clients and validators raise these; collection accessors catch them at
their boundary, record the message and kind, and return a sentinel.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Classification of a recorded collection error."""

    NOT_AUTHENTICATED = "not_authenticated"
    VALIDATION = "validation"
    REMOTE = "remote"
    NOT_FOUND = "not_found"
    UNEXPECTED = "unexpected"


class RepackHubError(Exception):
    """Base class for every error a collection can record."""

    kind: ErrorKind = ErrorKind.UNEXPECTED

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class NotAuthenticatedError(RepackHubError):
    """A mutation or owner-scoped read was attempted with no identity."""

    kind = ErrorKind.NOT_AUTHENTICATED

    def __init__(self, action: str) -> None:
        super().__init__(f"Not authenticated. Please log in to {action}.")
        self.action = action


class InvalidPayloadError(RepackHubError):
    """The caller's payload failed client-side validation."""

    kind = ErrorKind.VALIDATION


class DuplicateValueError(InvalidPayloadError):
    """Client-side uniqueness collision against the local list."""

    def __init__(self, field: str, value: Any, *, updating: bool = False) -> None:
        prefix = "Another record" if updating else "A record"
        super().__init__(f"{prefix} with the same {field} already exists.")
        self.field = field
        self.value = value


class StoreError(RepackHubError):
    """The remote store rejected a call (network, constraint, authorization)."""

    kind = ErrorKind.REMOTE

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details


class NotFoundError(RepackHubError):
    """A single-row read found no matching row owned by the caller."""

    kind = ErrorKind.NOT_FOUND
