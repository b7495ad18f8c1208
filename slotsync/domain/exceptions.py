"""
Domain-specific exception hierarchy for the slot synchronisation engine.
"""


class SlotSyncError(Exception):
    """Base class for all application-level errors."""


class ConfigurationError(SlotSyncError):
    """Raised when the recruiter configuration cannot be loaded at all."""


class CalendarAPIError(SlotSyncError):
    """Raised when calendar data cannot be fetched or parsed."""


class SlotStoreError(SlotSyncError):
    """Raised when slots cannot be listed from the remote scheduler."""


class AuthenticationError(SlotSyncError):
    """Raised when authentication or token handling fails."""
