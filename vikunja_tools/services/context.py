"""Explicit per-invocation context handed to every workflow."""

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

from vikunja_tools.services.resilience import NO_RETRY, CircuitBreaker, RetryPolicy, auth_retry_policy, call
from vikunja_tools.services.saved_filters import InMemorySavedFilters, SavedFilterLookup
from vikunja_tools.services.vikunja_client import RemoteTaskService, VikunjaClient

T = TypeVar("T")


@dataclass
class ToolContext:
    """Remote client, retry policy, circuit breaker and saved-filter lookup."""
    client: RemoteTaskService
    retry_policy: RetryPolicy = field(default_factory=auth_retry_policy)
    breaker: CircuitBreaker = field(default_factory=CircuitBreaker.from_config)
    saved_filters: SavedFilterLookup = field(default_factory=InMemorySavedFilters)

    async def call(
        self,
        operation: Callable[[], Awaitable[T]],
        description: str,
        *,
        retry: bool = False,
    ) -> T:
        """Run one remote call through the breaker; retry=True applies the auth retry policy."""
        policy = self.retry_policy if retry else NO_RETRY
        return await call(operation, policy, description=description, breaker=self.breaker)

    @classmethod
    def from_config(
        cls,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        saved_filters: Optional[SavedFilterLookup] = None,
    ) -> "ToolContext":
        """Context around a VikunjaClient built from the environment."""
        return cls(
            client=VikunjaClient(base_url, token),
            saved_filters=saved_filters if saved_filters is not None else InMemorySavedFilters(),
        )

    async def aclose(self) -> None:
        close = getattr(self.client, "aclose", None)
        if close is not None:
            await close()
