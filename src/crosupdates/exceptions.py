"""
Custom exceptions for crosupdates.

Network, parse and cache failures are recovered at component boundaries and
never cross them; these exceptions are raised inside components and by the
configuration layer.
"""


class CrosUpdatesError(Exception):
    """
    Base exception for all crosupdates errors.
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        """
        Initialize the exception.

        Args:
            message: The primary error message.
            details: Optional additional context about the error.
        """
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(CrosUpdatesError):
    """
    Exception raised when configuration is invalid or missing.
    """

    pass


class ConfigFileError(ConfigurationError):
    """Exception raised when the configuration file cannot be read or parsed."""

    pass


class ConfigValidationError(ConfigurationError):
    """Exception raised when a configuration value has the wrong type or range."""

    pass


# =============================================================================
# Fetch Errors
# =============================================================================


class FetchError(CrosUpdatesError):
    """
    Exception describing a failed upstream request.

    Attributes:
        url: The URL that was requested.
        status_code: HTTP status, when the server answered.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.url = url
        self.status_code = status_code


# =============================================================================
# Cache and Data Errors
# =============================================================================


class CacheError(CrosUpdatesError):
    """Exception raised when a cache file holds unusable content."""

    def __init__(
        self, message: str, path: str | None = None, details: str | None = None
    ) -> None:
        super().__init__(message, details)
        self.path = path


class DataFormatError(CrosUpdatesError):
    """Exception raised when an upstream record does not have the expected shape."""

    pass
