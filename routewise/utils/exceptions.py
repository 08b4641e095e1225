"""
Custom exception classes for error categorization in the RouteWise engine.

Single-segment failures are recovered locally by the optimizer and surface
in-band as ``issues``/``warnings``; these classes exist so that recovery can
be decided by type rather than by matching message strings.
"""


class RouteWiseError(Exception):
    """Base exception for all RouteWise errors."""

    def __init__(self, message: str, context: dict = None):
        """
        Initialize exception with message and optional context.

        Args:
            message: Error message
            context: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class TransientError(RouteWiseError):
    """
    Exception for transient errors that should be retried.

    Examples:
        - Network timeouts
        - Provider quota exceeded (OVER_QUERY_LIMIT)
    """
    pass


class PermanentError(RouteWiseError):
    """
    Exception for permanent errors that should not be retried.

    Examples:
        - Invalid API keys
        - Unrecognized locations
        - Malformed tool arguments
    """
    pass


# Provider errors

class ProviderError(RouteWiseError):
    """Base exception for directions/geocoding provider failures."""
    pass


class LocationNotFoundError(ProviderError, PermanentError):
    """
    The provider could not recognize one of the endpoints.

    Raised for ZERO_RESULTS / NOT_FOUND statuses. This is the error class
    that makes the optimizer try the location resolver.
    """
    pass


class RequestDeniedError(ProviderError, PermanentError):
    """The provider rejected the API key (REQUEST_DENIED)."""
    pass


class ProviderTimeoutError(ProviderError, TransientError):
    """A provider call exceeded its timeout."""
    pass


class ProviderRateLimitError(ProviderError, TransientError):
    """Exception for provider rate limiting."""

    def __init__(self, message: str, retry_after: int = None, context: dict = None):
        """
        Initialize rate limit error.

        Args:
            message: Error message
            retry_after: Seconds to wait before retrying
            context: Additional error context
        """
        super().__init__(message, context)
        self.retry_after = retry_after


# Engine errors

class LocationResolutionError(RouteWiseError):
    """No nearby town could be found for a raw location."""
    pass


class DecompositionExhausted(RouteWiseError):
    """
    An over-limit segment could not be split into valid sub-segments.

    Either no intermediate stops were discoverable or the split depth cap
    was reached. The optimizer keeps the original segment and warns.
    """
    pass


class InvalidOperationError(PermanentError):
    """Exception for malformed tool-call arguments."""

    def __init__(self, message: str, validation_errors: list = None, context: dict = None):
        """
        Initialize invalid operation error.

        Args:
            message: Error message
            validation_errors: List of specific validation errors
            context: Additional error context
        """
        super().__init__(message, context)
        self.validation_errors = validation_errors or []


class ConfigurationError(PermanentError):
    """Exception for configuration errors."""
    pass
