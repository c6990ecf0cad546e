"""Port for pushing a retained record to the external accounting system."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from uuid import UUID


class SyncTriggerError(RuntimeError):
    """Raised when the downstream sync could not be triggered."""


@runtime_checkable
class VendorSyncTrigger(Protocol):
    """Callable port fired after a vendor merge commits."""

    def __call__(self, vendor_id: UUID) -> None: ...


__all__ = ["SyncTriggerError", "VendorSyncTrigger"]
