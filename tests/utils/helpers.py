"""Test helper functions."""

import json
from io import BytesIO
from typing import Any, Dict, Optional

import httpx

from vikunja_tools.utils.errors import VikunjaAPIError


def api_error(status_code: int, message: str = "error", error_code: Optional[int] = None) -> VikunjaAPIError:
    """Raw remote failure as raised by the HTTP client."""
    return VikunjaAPIError(status_code, message, error_code)


def connection_refused() -> httpx.ConnectError:
    return httpx.ConnectError("[Errno 111] Connection refused")


def json_response(status_code: int, body: Any) -> httpx.Response:
    return httpx.Response(status_code, json=body)


class MockSocket:
    """Minimal socket for instantiating BaseHTTPRequestHandler subclasses."""

    def __init__(self, request_line: bytes):
        self._request_line = request_line

    def makefile(self, *args, **kwargs):
        return BytesIO(self._request_line)

    def sendall(self, data):
        pass

    def close(self):
        pass


def post_json_request(path: str, body: Dict[str, Any]) -> tuple[bytes, bytes]:
    """Request line and raw body for a JSON POST."""
    raw_body = json.dumps(body).encode('utf-8')
    return f"POST {path} HTTP/1.1\r\n\r\n".encode('utf-8'), raw_body
