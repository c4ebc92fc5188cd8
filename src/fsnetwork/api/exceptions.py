"""Custom exceptions for backend API operations.

This module defines the exception hierarchy reported by the transport, the
backend client and the operations built on top of them. Messages never carry
the auth token.
"""


class BackendError(Exception):
    """Base exception for all backend errors.

    Carries the HTTP status code and the raw response body when a response
    was received.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        data: bytes | None = None,
    ) -> None:
        """Initialize backend error.

        Args:
            message: Error message (must not contain the auth token)
            status_code: HTTP status code if a response was received
            data: Raw response body if one was received
        """
        self.status_code = status_code
        self.data = data
        super().__init__(message)

    @classmethod
    def create_unexpected_error(cls, method: str, url: str) -> "BackendError":
        """Create an error for unexpected transport failures with safe context.

        Args:
            method: HTTP method used
            url: URL called

        Returns:
            BackendError with contextual message
        """
        return cls(f"Unexpected backend error (method={method}, url={url})")

    @classmethod
    def create_operation_error(cls, operation_name: str, error: Exception) -> "BackendError":
        """Wrap an unexpected error raised while an operation was running.

        Only the exception type is included in the message.
        """
        wrapped = cls(f"Operation '{operation_name}' failed unexpectedly ({type(error).__name__})")
        wrapped.__cause__ = error
        return wrapped


class BackendNetworkError(BackendError):
    """Raised when the request could not complete at the network level."""

    def __init__(self, message: str = "Network error occurred") -> None:
        super().__init__(message)


class BackendTimeoutError(BackendNetworkError):
    """Raised when the request exceeds the configured timeout."""

    def __init__(self, message: str = "Request timeout") -> None:
        super().__init__(message)


class BackendCancelledError(BackendNetworkError):
    """Raised when an in-flight request is cancelled through the transport."""

    def __init__(self, message: str = "Request cancelled") -> None:
        super().__init__(message)


class TransportBusyError(BackendError):
    """Raised when a transport is asked to send while a call is in flight."""

    def __init__(self, message: str = "Transport already has a request in flight") -> None:
        super().__init__(message)


class BackendSerializationError(BackendError):
    """Raised when request parameters cannot be encoded as JSON."""

    def __init__(self, message: str = "Request parameters are not JSON serializable") -> None:
        super().__init__(message)


class BackendStatusError(BackendError):
    """Raised for responses in the failure range (400-498)."""

    def __init__(
        self,
        message: str = "Request failed",
        status_code: int = 400,
        data: bytes | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code, data=data)


class BackendAuthenticationError(BackendStatusError):
    """Raised when the backend rejects the auth token (401 Unauthorized)."""

    def __init__(self, message: str = "Authentication failed", data: bytes | None = None) -> None:
        super().__init__(message, status_code=401, data=data)


class BackendUnclassifiedStatusError(BackendError):
    """Raised for status codes outside both the success and failure ranges.

    Covers 1xx, 299, 3xx, 499 and 5xx. These are reported as failures.
    """

    def __init__(
        self,
        message: str = "Unclassified response status",
        status_code: int = 0,
        data: bytes | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code, data=data)


class BackendServerError(BackendUnclassifiedStatusError):
    """Raised when the backend returns a 5xx status."""

    def __init__(
        self,
        message: str = "Server error",
        status_code: int = 500,
        data: bytes | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code, data=data)


class BackendParseError(BackendError):
    """Raised when a response body cannot be parsed into the expected value."""

    def __init__(self, message: str = "Cannot parse response", data: bytes | None = None) -> None:
        super().__init__(message, data=data)

    @classmethod
    def create_parse_error(cls, endpoint: str, **context: str | int) -> "BackendParseError":
        """Create an error for response parsing failures with safe context.

        Args:
            endpoint: API endpoint that failed
            **context: Additional safe context information

        Returns:
            BackendParseError with contextual message
        """
        context_parts = [f"endpoint={endpoint}"]
        context_parts.extend(f"{key}={value}" for key, value in context.items())
        return cls(f"Cannot parse response ({', '.join(context_parts)})")


class OperationStateError(Exception):
    """Raised when an operation is driven through an illegal state transition."""

    def __init__(self, operation_name: str, state: str, event: str) -> None:
        self.operation_name = operation_name
        self.state = state
        self.event = event
        super().__init__(f"Cannot {event} operation '{operation_name}' in state {state}")
