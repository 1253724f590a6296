"""Single structured classifier mapping raw failures onto the error taxonomy."""

from typing import Optional

import httpx

from vikunja_tools.utils.errors import (
    AuthenticationError,
    ConnectivityError,
    NotFoundError,
    UnknownError,
    VikunjaAPIError,
    VikunjaToolsError,
)

CONNECTIVITY_GUIDANCE = (
    "Check that VIKUNJA_URL is correct and that the Vikunja server is running and reachable."
)
AUTH_GUIDANCE = "Check that VIKUNJA_API_TOKEN is valid and has not expired."


def classify_error(exc: BaseException, *, operation: Optional[str] = None) -> VikunjaToolsError:
    """Return the taxonomy error for exc. Already-classified errors pass through."""
    if isinstance(exc, VikunjaToolsError):
        return exc

    prefix = f"{operation} failed" if operation else "Vikunja request failed"
    details = {"operation": operation} if operation else {}

    if isinstance(exc, VikunjaAPIError):
        details["status_code"] = exc.status_code
        if exc.error_code is not None:
            details["remote_error_code"] = exc.error_code
        if exc.status_code in (401, 403):
            return AuthenticationError(
                f"{prefix}: authentication rejected ({exc.message}). {AUTH_GUIDANCE}", details
            )
        if exc.status_code == 404:
            return NotFoundError(f"{prefix}: {exc.message}", details)
        return UnknownError(f"{prefix}: {exc.message}", details, status_code=exc.status_code)

    # httpx.TimeoutException is a TransportError subclass
    if isinstance(exc, (httpx.TransportError, ConnectionError, OSError)):
        details["cause"] = type(exc).__name__
        return ConnectivityError(
            f"{prefix}: cannot reach the Vikunja server ({exc or type(exc).__name__}). {CONNECTIVITY_GUIDANCE}",
            details,
        )

    return UnknownError(f"{prefix}: {exc}", {**details, "cause": type(exc).__name__})


def is_authentication_error(error: BaseException) -> bool:
    """True for errors that may clear up when retried with a refreshed session."""
    return isinstance(classify_error(error), AuthenticationError)


def is_connectivity_error(error: BaseException) -> bool:
    """True when the server could not be reached at all."""
    return isinstance(classify_error(error), ConnectivityError)
