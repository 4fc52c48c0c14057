"""Error types raised by the analytics engine."""


class AnalyticsError(Exception):
    """Base class for analytics engine errors."""

    retryable = False


class StorageError(AnalyticsError):
    """Transient storage failure; the whole mutation should be retried."""

    retryable = True


class InvalidWindowError(AnalyticsError, ValueError):
    """Raised when an analytics query window is not a positive day count."""


class InvalidChangeError(AnalyticsError, ValueError):
    """Raised when a raw entry change event is missing its before/after rows."""


class EntryNotFoundError(AnalyticsError, LookupError):
    """Raised when a meal log entry does not exist."""


class InvalidTenantError(AnalyticsError, ValueError):
    """Raised when a tenant id is required to be a UUID but is not."""
