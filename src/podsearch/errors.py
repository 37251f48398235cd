"""Error kinds raised by the search service."""


class PodsearchError(Exception):
    """Base class for all podsearch errors."""

    pass


class ConfigurationError(PodsearchError):
    """Raised when the active backend is missing required settings."""

    pass


class SearchValidationError(PodsearchError):
    """Raised when a request lacks a required search parameter."""

    pass


class BackendError(PodsearchError):
    """Raised when the database or REST service rejects a query."""

    pass
