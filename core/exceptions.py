"""
Custom exceptions for CafeQueueWeb.

Exception Hierarchy:
    CafeQueueError (base)
    ├── ServiceError                 - Any Queue Service call failed
    │   ├── TransportError           - Service unreachable / timed out
    │   ├── ProtocolError            - Non-2xx status (may carry field errors)
    │   └── MalformedResponseError   - Payload could not be decoded
    ├── OrderValidationError         - Order request rejected before sending
    └── ConfirmationRequiredError    - Destructive action not confirmed

Usage:
    The Queue Service client never retries and never hides a failure.
    Workflows let ServiceError propagate to the view layer, which turns it
    into a user-visible message. Local snapshots are left untouched.
"""

from typing import Optional, Dict, Any, List


class CafeQueueError(Exception):
    """
    Base exception for all CafeQueueWeb errors.

    Callers can catch every application-specific error with one clause.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# QUEUE SERVICE ERRORS - raised by QueueServiceClient, never retried
# =============================================================================

class ServiceError(CafeQueueError):
    """
    A Queue Service call failed.

    Carries the HTTP method and path of the failed call so logs and
    error responses can name the operation.
    """

    def __init__(
        self,
        message: str,
        method: Optional[str] = None,
        path: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        error_details = details or {}
        if method:
            error_details["method"] = method
        if path:
            error_details["path"] = path
        super().__init__(message, error_details)
        self.method = method
        self.path = path


class TransportError(ServiceError):
    """
    The Queue Service could not be reached.

    Typical causes:
    - Service not running or wrong QUEUE_SERVICE_URL
    - Network failure
    - Request exceeded QUEUE_SERVICE_TIMEOUT
    """

    def __init__(self, method: str, path: str, reason: str):
        message = f"Queue Service unreachable ({method} {path}): {reason}"
        details = {
            "reason": reason,
            "resolution": "Check that the Queue Service is running and QUEUE_SERVICE_URL is correct"
        }
        super().__init__(message, method, path, details)
        self.reason = reason


class ProtocolError(ServiceError):
    """
    The Queue Service answered with a non-success status.

    Validation failures from the service arrive as an ``errors`` array of
    ``{field, defaultMessage}`` objects; they are exposed as field_errors.
    Precondition violations (e.g. assign-next with an empty queue) also
    land here.
    """

    def __init__(
        self,
        method: str,
        path: str,
        status_code: int,
        body: str = "",
        field_errors: Optional[List[Dict[str, str]]] = None,
        service_message: Optional[str] = None
    ):
        message = f"Queue Service rejected {method} {path} with HTTP {status_code}"
        if service_message:
            message = f"{message}: {service_message}"
        details: Dict[str, Any] = {"status_code": status_code}
        if field_errors:
            details["field_errors"] = field_errors
        super().__init__(message, method, path, details)
        self.status_code = status_code
        self.body = body
        self.field_errors = field_errors or []
        self.service_message = service_message

    @property
    def is_client_error(self) -> bool:
        """Whether the service blamed the request (4xx)."""
        return 400 <= self.status_code < 500


class MalformedResponseError(ServiceError):
    """
    The Queue Service answered 2xx but the payload could not be decoded.

    Covers invalid JSON, unexpected shapes (object where a list was
    expected), missing required fields and unknown status values.
    """

    def __init__(self, method: str, path: str, reason: str):
        message = f"Malformed response from {method} {path}: {reason}"
        super().__init__(message, method, path, {"reason": reason})
        self.reason = reason


# =============================================================================
# WORKFLOW ERRORS - raised before any request is sent
# =============================================================================

class OrderValidationError(CafeQueueError):
    """
    An order request failed client-side validation.

    Every failing field is reported at once so the customer can fix the
    whole form in one pass.
    """

    def __init__(self, field_errors: List[Dict[str, str]]):
        summary = "; ".join(f"{e['field']}: {e['message']}" for e in field_errors)
        super().__init__(f"Invalid order: {summary}", {"field_errors": field_errors})
        self.field_errors = field_errors


class ConfirmationRequiredError(CafeQueueError):
    """
    A destructive, irreversible action was requested without confirmation.

    No request is sent to the Queue Service when this is raised.
    """

    def __init__(self, action: str):
        message = f"'{action}' is destructive and requires explicit confirmation"
        super().__init__(message, {"action": action})
        self.action = action
