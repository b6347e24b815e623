"""
mgnify-pathways Custom Exception Hierarchy

Provides specific exception types for KEGG/MGnify access, input validation
and configuration problems.
"""

from typing import Optional, Dict, Any


class MGnifyPathwaysException(Exception):
    """
    Base exception for all mgnify-pathways errors.

    All custom exceptions should inherit from this class.
    This allows catching all package-specific errors with a single except clause.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize exception with message and optional details.

        Args:
            message: Human-readable error message
            details: Additional context (service name, identifiers, etc.)
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        """String representation with details."""
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


# =============================================================================
# Remote Service Errors
# =============================================================================

class DatabaseError(MGnifyPathwaysException):
    """
    Base class for errors raised while talking to a remote database.

    Use for errors related to KEGG REST or the MGnify API.
    """
    pass


class DatabaseConnectionError(DatabaseError):
    """
    Connection to the service failed.

    This is typically a transient error - retry may succeed.
    """

    def __init__(self, server_name: str, message: str, details: Optional[Dict[str, Any]] = None):
        details = details or {}
        details['server'] = server_name
        super().__init__(message, details)
        self.server_name = server_name


class DatabaseTimeoutError(DatabaseError):
    """
    Request timed out.

    This is typically a transient error - retry may succeed.
    """

    def __init__(self, server_name: str, timeout: float, query: str, details: Optional[Dict[str, Any]] = None):
        details = details or {}
        details.update({
            'server': server_name,
            'timeout_seconds': timeout,
            'query': query
        })
        message = f"{server_name} query timed out after {timeout}s: {query}"
        super().__init__(message, details)
        self.server_name = server_name
        self.timeout = timeout
        self.query = query


class DatabaseUnavailableError(DatabaseError):
    """
    Service is unavailable (HTTP 429/503 or maintenance).

    This typically requires waiting before retry.
    """

    def __init__(self, server_name: str, reason: str, retry_after: Optional[int] = None):
        details = {
            'server': server_name,
            'reason': reason
        }
        if retry_after:
            details['retry_after_seconds'] = retry_after

        message = f"{server_name} is unavailable: {reason}"
        super().__init__(message, details)
        self.server_name = server_name
        self.retry_after = retry_after


class ServiceError(DatabaseError):
    """
    Service returned an error or a response that could not be parsed.

    Surfaced to the caller, who decides whether to retry or abort.
    """

    def __init__(self, server_name: str, status_code: Optional[int], error_message: str,
                 endpoint: Optional[str] = None):
        """
        Initialize with service error information.

        Args:
            server_name: Name of the service ("KEGG", "MGnify")
            status_code: HTTP status code, None for malformed payloads
            error_message: Error description
            endpoint: Path that was requested
        """
        details = {
            'server': server_name,
            'status_code': status_code,
            'error_message': error_message
        }
        if endpoint:
            details['endpoint'] = endpoint

        message = f"{server_name} service error"
        if status_code:
            message += f" [{status_code}]"
        if endpoint:
            message += f" in {endpoint}"
        message += f": {error_message}"

        super().__init__(message, details)
        self.server_name = server_name
        self.status_code = status_code
        self.error_message = error_message
        self.endpoint = endpoint

    def is_retryable(self) -> bool:
        """
        Determine if this error is retryable.

        Returns:
            True for 5xx responses and reset connections, False otherwise
        """
        if 'ECONNRESET' in self.error_message.upper() or 'connection reset' in self.error_message.lower():
            return True

        # Malformed payloads will not fix themselves
        if self.status_code is None:
            return False

        return self.status_code >= 500


class KEGGLookupError(DatabaseError, LookupError):
    """
    A KEGG identifier is unknown or could not be resolved.

    Also a builtin ``LookupError`` so callers can catch it without importing
    this module. Raised per identifier; the pathway selector skips the
    identifier and continues.
    """

    def __init__(self, identifier: str, reason: str, kind: str = "entry"):
        """
        Args:
            identifier: The module or pathway accession that failed
            reason: Why the lookup failed
            kind: "module", "pathway" or "entry"
        """
        message = f"KEGG {kind} lookup failed for {identifier}: {reason}"
        super().__init__(message, {'identifier': identifier, 'kind': kind})
        self.identifier = identifier
        self.reason = reason
        self.kind = kind


# =============================================================================
# Data Validation Errors
# =============================================================================

class DataValidationError(MGnifyPathwaysException):
    """
    Data validation failed.

    This is typically NOT retryable - the data itself is the problem.
    """

    def __init__(self, message: str, field: Optional[str] = None,
                 value: Optional[Any] = None, expected: Optional[str] = None):
        details = {}
        if field:
            details['field'] = field
        if value is not None:
            details['value'] = str(value)
        if expected:
            details['expected'] = expected

        super().__init__(message, details)
        self.field = field
        self.value = value
        self.expected = expected


class EmptyResultError(DataValidationError):
    """
    Query returned no results.

    Raised when a lookup returns nothing where at least one result is required,
    e.g. no MGnify download matches the requested label.
    """

    def __init__(self, query_type: str, query: str, expected_min: int = 1):
        message = f"{query_type} returned no results for: {query}"
        if expected_min > 0:
            message += f" (expected at least {expected_min})"

        super().__init__(message)
        self.details.update({
            'query_type': query_type,
            'query': query,
            'expected_min': expected_min
        })
        self.query_type = query_type
        self.query = query


class EmptyInputError(DataValidationError):
    """
    No modules were supplied for evaluation.

    The selector handles this itself and returns only the pinned pathways.
    """

    def __init__(self, field: str = 'modules_of_interest'):
        super().__init__(f"{field} is empty: nothing to evaluate", field=field,
                         expected='at least one module accession')


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(MGnifyPathwaysException):
    """
    Configuration error.

    This is NOT retryable - requires fixing configuration.
    """

    def __init__(self, config_key: str, message: str, config_file: Optional[str] = None):
        details = {'config_key': config_key}
        if config_file:
            details['config_file'] = config_file

        super().__init__(message, details)
        self.config_key = config_key
        self.config_file = config_file


class MissingConfigurationError(ConfigurationError):
    """Required configuration key is missing."""

    def __init__(self, config_key: str, config_file: Optional[str] = None):
        message = f"Missing required configuration: {config_key}"
        if config_file:
            message += f" in {config_file}"

        super().__init__(config_key, message, config_file)


# =============================================================================
# Helper Functions
# =============================================================================

def is_transient_error(error: Exception) -> bool:
    """
    Determine if an error is transient (retryable).

    Args:
        error: The exception to check

    Returns:
        True if error is likely transient and should be retried

    Example:
        >>> try:
        ...     client.link("pathway", "M00001")
        ... except Exception as e:
        ...     if is_transient_error(e):
        ...         # Retry
        ...     else:
        ...         # Don't retry
    """
    # Unknown identifiers never become known on retry
    if isinstance(error, KEGGLookupError):
        return False

    transient_types = (
        DatabaseConnectionError,
        DatabaseTimeoutError,
        DatabaseUnavailableError,
        ConnectionError,
        TimeoutError,
    )

    if isinstance(error, transient_types):
        return True

    if isinstance(error, ServiceError):
        return error.is_retryable()

    error_msg = str(error).upper()
    if 'ECONNRESET' in error_msg or 'CONNECTION RESET' in error_msg:
        return True

    return False


def format_error_for_logging(error: Exception) -> Dict[str, Any]:
    """
    Format exception for structured logging.

    Example:
        >>> logger.error("Lookup failed", extra={"extra_fields": format_error_for_logging(e)})
    """
    base_info = {
        'error_type': type(error).__name__,
        'error_message': str(error),
        'is_transient': is_transient_error(error)
    }

    if isinstance(error, MGnifyPathwaysException):
        base_info.update(error.details)

    return base_info
