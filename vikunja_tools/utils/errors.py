"""Error handling utilities."""

from typing import Any, Optional


class VikunjaToolsError(Exception):
    """Base exception for vikunja-tools."""

    code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        retries: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})
        self.retries = retries

    def with_retry_context(self, retries: int) -> "VikunjaToolsError":
        """Return a copy of this error annotated with the retry count."""
        error = self.__class__.__new__(self.__class__)
        error.__dict__.update(self.__dict__)
        error.message = f"{self.message} (failed after {retries} retries)"
        error.details = {**self.details, "retries": retries}
        error.retries = retries
        Exception.__init__(error, error.message)
        return error

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the error response envelope."""
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(VikunjaToolsError):
    """Bad input. Never reaches the remote service."""
    code = "VALIDATION_ERROR"


class FilterSyntaxError(ValidationError):
    """Filter expression could not be parsed."""
    code = "FILTER_SYNTAX_ERROR"


class NotFoundError(VikunjaToolsError):
    """Remote entity absent or inaccessible."""
    code = "NOT_FOUND"


class AuthenticationError(VikunjaToolsError):
    """Credentials rejected by the remote service."""
    code = "AUTH_ERROR"


class ConnectivityError(VikunjaToolsError):
    """Network-level failure talking to the remote service."""
    code = "CONNECTIVITY_ERROR"


class UnknownError(VikunjaToolsError):
    """Remote failure that fits no other category."""
    code = "API_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        retries: Optional[int] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, details, retries)
        self.status_code = status_code
        if status_code is not None:
            self.details.setdefault("status_code", status_code)


class PartialFailureError(VikunjaToolsError):
    """A multi-step workflow succeeded partway."""
    code = "PARTIAL_FAILURE"

    def __init__(
        self,
        message: str,
        completed_steps: list[str],
        failed_step: str,
        rollback_succeeded: Optional[bool] = None,
        details: Optional[dict[str, Any]] = None,
        retries: Optional[int] = None,
    ):
        details = {
            **(details or {}),
            "completed_steps": list(completed_steps),
            "failed_step": failed_step,
            "rollback_succeeded": rollback_succeeded,
        }
        super().__init__(message, details, retries)
        self.completed_steps = list(completed_steps)
        self.failed_step = failed_step
        self.rollback_succeeded = rollback_succeeded


class ConfigurationError(VikunjaToolsError):
    """Missing or invalid configuration."""
    code = "CONFIGURATION_ERROR"


class VikunjaAPIError(Exception):
    """Raw non-2xx response from the Vikunja API (unclassified)."""

    def __init__(self, status_code: int, message: str, error_code: Optional[int] = None):
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.error_code = error_code
