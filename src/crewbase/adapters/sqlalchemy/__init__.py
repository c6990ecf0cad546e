"""SQLAlchemy adapter package for Crewbase."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyDependencyRepository,
    SqlAlchemyEntityRepository,
    SqlAlchemyMergeAuditRepository,
    SqlAlchemyRoleRepository,
)
from .unit_of_work import (
    SqlAlchemyMergeUnitOfWork,
    StartupError,
    configured_engine,
    enable_sqlite_savepoints,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyDependencyRepository",
    "SqlAlchemyEntityRepository",
    "SqlAlchemyMergeAuditRepository",
    "SqlAlchemyMergeUnitOfWork",
    "SqlAlchemyRoleRepository",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "enable_sqlite_savepoints",
    "is_started",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
