"""
Custom Exceptions for the CollabSense engine.

Provides specific exception types for different error scenarios so that
callers can tell "the store is down" apart from "the caller sent garbage"
and from "policy said no".
"""


class CollabSenseError(Exception):
    """Base exception for all CollabSense errors."""
    pass


# =============================================================================
# Data Access Exceptions
# =============================================================================

class DataUnavailable(CollabSenseError):
    """Raised when an upstream store is unreachable or a query fails."""

    def __init__(self, source: str, reason: str = None):
        self.source = source
        self.reason = reason
        msg = f"Data unavailable from {source}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class NotFound(CollabSenseError):
    """Raised when a record addressed by id does not exist."""

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


# =============================================================================
# Validation Exceptions
# =============================================================================

class InvalidInput(CollabSenseError):
    """Raised when a caller supplies malformed input."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


# =============================================================================
# Notification Control Flow
# =============================================================================

class PreferenceSuppressed(CollabSenseError):
    """
    Raised internally when a user's preferences disable a notification kind.

    Not a failure: the dispatcher catches it and reports "no notification".
    """

    def __init__(self, user_id: str, kind: str):
        self.user_id = user_id
        self.kind = kind
        super().__init__(f"Notifications of kind '{kind}' disabled for user {user_id}")

