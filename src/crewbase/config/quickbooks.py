"""QuickBooks vendor sync trigger configuration."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float, optional_env_var, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

QUICKBOOKS_SYNC_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True, slots=True)
class QuickBooksSyncConfig:
    """Where to push a retained vendor after a merge.

    An empty ``url`` disables the trigger entirely.
    """

    url: str | None
    token: str | None = None
    timeout_seconds: float = QUICKBOOKS_SYNC_TIMEOUT_SECONDS

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def resilience(self) -> ResilienceConfig:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return ResilienceConfig(
            name="quickbooks-sync",
            timeout_seconds=self.timeout_seconds,
            retry=RetryPolicy(total=3),
            ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
            default_headers=headers,
        )


def get_quickbooks_sync_config() -> QuickBooksSyncConfig:
    """Read the sync endpoint; a configured URL also requires a bearer token."""

    url = optional_env_var("QUICKBOOKS_SYNC_URL")
    token = require_env_vars(["QUICKBOOKS_SYNC_TOKEN"])["QUICKBOOKS_SYNC_TOKEN"] if url else None
    return QuickBooksSyncConfig(
        url=url,
        token=token,
        timeout_seconds=env_float(
            "QUICKBOOKS_SYNC_TIMEOUT_SECONDS",
            default=QUICKBOOKS_SYNC_TIMEOUT_SECONDS,
        ),
    )
