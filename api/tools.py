"""Tool invocation endpoint: POST {"tool": ..., "arguments": {...}}."""

from http.server import BaseHTTPRequestHandler
import asyncio
import json
from typing import Any, Union

from vikunja_tools.models.responses import ErrorResponse, ToolResponse
from vikunja_tools.services.context import ToolContext
from vikunja_tools.services.dispatcher import execute_tool
from vikunja_tools.utils.errors import ValidationError, VikunjaToolsError
from vikunja_tools.utils.logging import get_structured_logger
from vikunja_tools.utils.logging_config import LoggingConfig
from vikunja_tools.utils.responses import error_response

LoggingConfig.setup_logging()
_logger = get_structured_logger(__name__)

STATUS_BY_ERROR_CODE = {
    "VALIDATION_ERROR": 400,
    "FILTER_SYNTAX_ERROR": 400,
    "AUTH_ERROR": 401,
    "NOT_FOUND": 404,
    "API_ERROR": 502,
    "PARTIAL_FAILURE": 502,
    "CONNECTIVITY_ERROR": 503,
    "CONFIGURATION_ERROR": 500,
}


def status_for(response: Union[ToolResponse, ErrorResponse]) -> int:
    """HTTP status for an envelope; unknown error codes map to 500."""
    if response.success:
        return 200
    return STATUS_BY_ERROR_CODE.get(response.error.get("code"), 500)


async def run_tool(tool: str, arguments: Any) -> Union[ToolResponse, ErrorResponse]:
    """Build a context for this request only, run the tool, close the client."""
    try:
        context = ToolContext.from_config()
    except VikunjaToolsError as e:
        return error_response(tool, e)
    try:
        return await execute_tool(tool, arguments, context)
    finally:
        await context.aclose()


class handler(BaseHTTPRequestHandler):
    """Serverless handler for tool invocations."""

    def _send_json(self, status: int, payload: dict) -> None:
        self.send_response(status)
        self.send_header('Content-Type', 'application/json')
        self.end_headers()
        self.wfile.write(json.dumps(payload).encode('utf-8'))

    def do_POST(self):
        """Handle a tool invocation."""
        content_length = int(self.headers.get('Content-Length', 0))
        raw_body = self.rfile.read(content_length).decode('utf-8') if content_length > 0 else ""

        try:
            body = json.loads(raw_body) if raw_body else {}
        except json.JSONDecodeError:
            body = None

        if not isinstance(body, dict) or not body.get("tool"):
            error = ValidationError(
                'Request body must be JSON with a "tool" name. '
                'Example: {"tool": "vikunja_tasks", "arguments": {"subcommand": "get", "id": 123}}',
                details={"field": "tool"},
            )
            self._send_json(400, error_response("unknown", error).model_dump(mode="json"))
            return

        tool = body["tool"]
        response = asyncio.run(run_tool(tool, body.get("arguments", {})))
        status = status_for(response)
        _logger.info("Tool request handled", tool=tool, status_code=status)
        self._send_json(status, response.model_dump(mode="json"))

    def do_GET(self):
        """Describe the endpoint."""
        self._send_json(200, {"status": "ok", "endpoint": "tools", "method": "POST"})
