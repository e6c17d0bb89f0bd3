"""Error taxonomy shared by services, views and functions."""

from __future__ import annotations


class EventHubError(Exception):
    """Base class for errors surfaced to the user."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(EventHubError):
    """Malformed input, rejected before anything is written."""

    status_code = 400

    def __init__(self, message: str, field_errors: dict[str, list[str]] | None = None):
        super().__init__(message)
        self.field_errors = field_errors or {}


class AuthError(EventHubError):
    """No live identity where one is required."""

    status_code = 401


class PermissionDeniedError(EventHubError, PermissionError):
    """Role-gated action attempted by the wrong role."""

    status_code = 403


class PathResolutionError(EventHubError):
    """A storage key could not be derived for a stored object."""

    status_code = 400


class RemoteError(EventHubError):
    """Storage or database failure, carrying the underlying message."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


__all__ = [
    'EventHubError',
    'ValidationError',
    'AuthError',
    'PermissionDeniedError',
    'PathResolutionError',
    'RemoteError',
]
