"""Errors raised by the tracker.

Every failure a command can produce is one of these; the HTTP layer maps
them to status codes and the sync client maps status codes back to them.
"""


class TrackerError(Exception):
    """Base class for all tracker errors."""


class ValidationError(TrackerError):
    """Missing or invalid input; nothing was changed."""


class IllegalTransitionError(ValidationError):
    """The requested status change is not allowed from the current status."""


class NotFoundError(TrackerError):
    """No paper exists with the requested id."""

    def __init__(self, paper_id: str):
        super().__init__(f"Paper {paper_id} not found")
        self.paper_id = paper_id


class StoreError(TrackerError):
    """The record store failed to read or write."""


class BlobError(StoreError):
    """The blob store failed to store or remove a file."""


class AuthenticationError(TrackerError):
    """The request carried no valid credentials."""
