"""Central error types used across the application."""

from __future__ import annotations


class RunTrackerError(RuntimeError):
    """Base error for run tracking failures."""


class InvalidTransitionError(RunTrackerError):
    """Raised when a recording command is not valid in the current state."""


class PersistenceError(RuntimeError):
    """Raised when a write to the database fails and was rolled back."""


class NotFoundError(LookupError):
    """Raised when an activity, user or token does not exist."""


class PermissionDeniedError(RuntimeError):
    """Raised when a user acts on something they do not own."""


class AuthenticationError(RuntimeError):
    """Raised for bad credentials or an unknown / revoked token."""


class DuplicateUserError(RuntimeError):
    """Raised when registering an email that is already taken."""


__all__ = [
    "RunTrackerError",
    "InvalidTransitionError",
    "PersistenceError",
    "NotFoundError",
    "PermissionDeniedError",
    "AuthenticationError",
    "DuplicateUserError",
]
