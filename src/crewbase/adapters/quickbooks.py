"""Trigger the QuickBooks vendor sync after a vendor merge commits."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from crewbase.adapters.http_resilience import ResilientClient
from crewbase.config import QuickBooksSyncConfig, get_quickbooks_sync_config
from crewbase.domain.ports.sync import SyncTriggerError, VendorSyncTrigger

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from crewbase.config import ResilienceConfig

log = getLogger(__name__)


class SyncResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    success: bool = True
    error: str | None = None


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class QuickBooksVendorSync:
    """POST ``{"vendorId": ...}`` to the configured sync endpoint."""

    config: QuickBooksSyncConfig = field(default_factory=get_quickbooks_sync_config)
    transport: httpx.AsyncBaseTransport | None = None
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    def __call__(self, vendor_id: UUID) -> None:
        if not self.config.enabled:
            log.debug("QuickBooks sync disabled; skipping vendor %s", vendor_id)
            return
        try:
            asyncio.run(self._push(vendor_id))
        except SyncTriggerError:
            raise
        except RuntimeError as exc:
            # asyncio.run refuses to start inside a running loop
            raise SyncTriggerError(f"QuickBooks sync could not run: {exc}") from exc

    async def _push(self, vendor_id: UUID) -> None:
        url = self.config.url or ""
        resilience = replace(self.config.resilience(), transport=self.transport)
        async with self.client_factory(resilience) as client:
            try:
                response = await client.post(url, json={"vendorId": str(vendor_id)})
                response.raise_for_status()
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                raise SyncTriggerError(f"QuickBooks sync request failed: {exc}") from exc

        if not response.content:
            return
        try:
            payload = SyncResponse.model_validate_json(response.content)
        except ValidationError:
            log.warning("Unexpected QuickBooks sync response for vendor %s", vendor_id)
            return
        if not payload.success:
            raise SyncTriggerError(payload.error or "QuickBooks sync reported failure")


if TYPE_CHECKING:
    _sync_check: VendorSyncTrigger = QuickBooksVendorSync()
