"""
Exception classes for dstore.

Every failure surfaced by the transfer engines and gateway clients is one of
these. Messages decoded from a gateway failure envelope are kept on the
exception as ``message`` rather than flattened into a formatted string.
"""

from typing import Any, Dict, Optional


class DStoreError(Exception):
    """Base exception for all dstore errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class SourceUnavailable(DStoreError):
    """Raised when a local upload source cannot be opened or read."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        details = {"path": path} if path else {}
        super().__init__(message, details)
        self.path = path


class SinkUnavailable(DStoreError):
    """Raised when a download destination cannot be created."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        details = {"path": path} if path else {}
        super().__init__(message, details)
        self.path = path


class SinkWriteError(DStoreError):
    """Raised when writing a received chunk to the destination fails."""

    def __init__(self, message: str, bytes_written: int = 0) -> None:
        super().__init__(message, {"bytes_written": bytes_written})
        self.bytes_written = bytes_written


class TransportError(DStoreError):
    """Raised for network-level failures (connection, DNS, timeout, reset)."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        details = {"status_code": status_code} if status_code else {}
        super().__init__(message, details)
        self.status_code = status_code


class GatewayError(DStoreError):
    """Raised when the gateway answers with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        details = {"status_code": status_code} if status_code else {}
        super().__init__(message, details)
        self.status_code = status_code


class AuthenticationFailed(GatewayError):
    """Raised when the credential exchange is rejected."""


class UploadFailed(GatewayError):
    """Raised when the gateway rejects an upload."""


class DownloadFailed(GatewayError):
    """Raised when the gateway rejects a download."""


class PodError(GatewayError):
    """Raised when a pod lifecycle request is rejected."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        action: Optional[str] = None,
    ) -> None:
        super().__init__(message, status_code)
        self.action = action
        if action:
            self.details["action"] = action


class DecodeError(DStoreError):
    """Raised when a success response does not match the expected shape."""

    def __init__(self, message: str, body: Optional[str] = None) -> None:
        details = {"body": body[:200]} if body else {}
        super().__init__(message, details)
        self.body = body


class ValidationError(DStoreError):
    """Raised for input validation errors."""

    def __init__(self, field: str, value: Any, message: str) -> None:
        details = {"field": field, "value": value}
        super().__init__(f"Validation error for {field}: {message}", details)
        self.field = field
        self.value = value


class ConfigurationError(DStoreError):
    """Raised for configuration-related errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
