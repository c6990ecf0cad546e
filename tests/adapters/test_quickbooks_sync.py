from __future__ import annotations

import json
from uuid import uuid4

import httpx
import pytest

from crewbase.adapters.quickbooks import QuickBooksVendorSync
from crewbase.config import MissingConfigurationError, QuickBooksSyncConfig
from crewbase.config.quickbooks import get_quickbooks_sync_config
from crewbase.domain.ports.sync import SyncTriggerError

SYNC_URL = "https://sync.example.com/functions/v1/quickbooks-sync-vendor"


def _config() -> QuickBooksSyncConfig:
    return QuickBooksSyncConfig(url=SYNC_URL, token="service-token", timeout_seconds=1.0)


def test_sync_posts_vendor_id_with_bearer_token() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": True})

    vendor_id = uuid4()
    QuickBooksVendorSync(config=_config(), transport=httpx.MockTransport(handler))(vendor_id)

    (request,) = seen
    assert request.method == "POST"
    assert str(request.url) == SYNC_URL
    assert request.headers["Authorization"] == "Bearer service-token"
    assert json.loads(request.content) == {"vendorId": str(vendor_id)}


def test_sync_http_error_raises_trigger_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "bad vendor"}, request=request)

    sync = QuickBooksVendorSync(config=_config(), transport=httpx.MockTransport(handler))

    with pytest.raises(SyncTriggerError):
        sync(uuid4())


def test_sync_reported_failure_raises_trigger_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        _ = request
        return httpx.Response(200, json={"success": False, "error": "token expired"})

    sync = QuickBooksVendorSync(config=_config(), transport=httpx.MockTransport(handler))

    with pytest.raises(SyncTriggerError, match="token expired"):
        sync(uuid4())


def test_sync_tolerates_unexpected_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        _ = request
        return httpx.Response(200, text="queued")

    QuickBooksVendorSync(config=_config(), transport=httpx.MockTransport(handler))(uuid4())


def test_disabled_sync_sends_nothing() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError(f"unexpected request to {request.url}")

    sync = QuickBooksVendorSync(
        config=QuickBooksSyncConfig(url=None), transport=httpx.MockTransport(handler)
    )

    sync(uuid4())


def test_sync_url_requires_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("QUICKBOOKS_SYNC_URL", SYNC_URL)

    with pytest.raises(MissingConfigurationError):
        get_quickbooks_sync_config()

    monkeypatch.setenv("QUICKBOOKS_SYNC_TOKEN", "service-token")
    monkeypatch.setenv("QUICKBOOKS_SYNC_TIMEOUT_SECONDS", "2.5")
    config = get_quickbooks_sync_config()

    assert config.enabled
    assert config.token == "service-token"
    assert config.timeout_seconds == 2.5


def test_sync_malformed_url_raises_trigger_error() -> None:
    sync = QuickBooksVendorSync(
        config=QuickBooksSyncConfig(url="http://sync.example.com:notaport/", token="t")
    )

    with pytest.raises(SyncTriggerError):
        sync(uuid4())
