"""Vikunja connection and retry settings read from the environment."""

import os
from typing import Optional

from vikunja_tools.utils.errors import ConfigurationError


class VikunjaConfig:
    """Centralized service configuration."""

    VIKUNJA_URL = os.environ.get("VIKUNJA_URL", "").strip().rstrip("/")
    VIKUNJA_API_TOKEN = os.environ.get("VIKUNJA_API_TOKEN", "").strip()
    VIKUNJA_TIMEOUT_SECONDS = float(os.environ.get("VIKUNJA_TIMEOUT_SECONDS", "30"))

    AUTH_RETRY_MAX_RETRIES = int(os.environ.get("AUTH_RETRY_MAX_RETRIES", "3"))
    AUTH_RETRY_INITIAL_DELAY_MS = int(os.environ.get("AUTH_RETRY_INITIAL_DELAY_MS", "1000"))
    AUTH_RETRY_MAX_DELAY_MS = int(os.environ.get("AUTH_RETRY_MAX_DELAY_MS", "10000"))
    AUTH_RETRY_BACKOFF_FACTOR = float(os.environ.get("AUTH_RETRY_BACKOFF_FACTOR", "2"))

    CIRCUIT_BREAKER_THRESHOLD = int(os.environ.get("CIRCUIT_BREAKER_THRESHOLD", "5"))
    CIRCUIT_BREAKER_RESET_SECONDS = float(os.environ.get("CIRCUIT_BREAKER_RESET_SECONDS", "30"))

    DEFAULT_PAGE_SIZE = int(os.environ.get("DEFAULT_PAGE_SIZE", "50"))

    @classmethod
    def require_connection(
        cls,
        url: Optional[str] = None,
        token: Optional[str] = None,
    ) -> tuple[str, str]:
        """Return (url, token) or raise if either is missing."""
        url = (url or cls.VIKUNJA_URL).rstrip("/")
        token = token or cls.VIKUNJA_API_TOKEN
        if not url or not token:
            raise ConfigurationError(
                "VIKUNJA_URL and VIKUNJA_API_TOKEN must be set. "
                "Example: VIKUNJA_URL=https://vikunja.example.com/api/v1"
            )
        return url, token
