"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import (
    DependencyRepository,
    EntityRepository,
    EntityRow,
    MergeAuditRepository,
    RoleRepository,
)
from .sync import SyncTriggerError, VendorSyncTrigger
from .unit_of_work import (
    MergeRepositories,
    MergeUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "DependencyRepository",
    "EntityRepository",
    "EntityRow",
    "MergeAuditRepository",
    "MergeRepositories",
    "MergeUnitOfWork",
    "RepositoryCollection",
    "RoleRepository",
    "SyncTriggerError",
    "UnitOfWork",
    "VendorSyncTrigger",
]
