"""Health check endpoint."""

from http.server import BaseHTTPRequestHandler
import json

from vikunja_tools.utils.config import VikunjaConfig
from vikunja_tools.utils.dates import current_timestamp


def health_status() -> dict:
    """Service status; `configured` tells whether a Vikunja connection can be built."""
    return {
        "status": "ok",
        "service": "vikunja-tools",
        "configured": bool(VikunjaConfig.VIKUNJA_URL and VikunjaConfig.VIKUNJA_API_TOKEN),
        "timestamp": current_timestamp(),
    }


class handler(BaseHTTPRequestHandler):
    """Health check handler for serverless deployment."""

    def do_GET(self):
        """Handle GET request."""
        self.send_response(200)
        self.send_header('Content-Type', 'application/json')
        self.end_headers()
        response = json.dumps(health_status())
        self.wfile.write(response.encode('utf-8'))

    def do_POST(self):
        """Handle POST request (same as GET for health check)."""
        self.do_GET()
