"""Exception types shared across kalam."""

from __future__ import annotations


class KalamError(Exception):
    """Base error for kalam."""


class StoreError(KalamError):
    """Raised when a data store call fails.

    ``message`` carries the backend's own error text so callers can show
    it to the user verbatim.
    """

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class PostNotFoundError(KalamError):
    """Raised when a post does not exist or is not visible to the caller."""


class DraftValidationError(KalamError):
    """Raised when a draft is missing required fields."""


class PermissionDeniedError(KalamError):
    """Raised when the current user lacks the role an operation needs."""
