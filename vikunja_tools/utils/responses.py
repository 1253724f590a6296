"""Response envelope builders."""

from typing import Any, Optional

from vikunja_tools.models.responses import ErrorResponse, ToolResponse
from vikunja_tools.utils.dates import current_timestamp
from vikunja_tools.utils.errors import VikunjaToolsError


def success_response(
    operation: str,
    message: str,
    data: Optional[dict[str, Any]] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> ToolResponse:
    """Build a success envelope; metadata always carries a timestamp."""
    return ToolResponse(
        operation=operation,
        message=message,
        data=data or {},
        metadata={"timestamp": current_timestamp(), **(metadata or {})},
    )


def error_response(operation: str, error: VikunjaToolsError) -> ErrorResponse:
    """Build an error envelope from a classified error."""
    return ErrorResponse(
        operation=operation,
        error={**error.to_dict(), "timestamp": current_timestamp()},
    )
