"""Ports for reading and rewriting mergeable records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from decimal import Decimal
    from uuid import UUID

    from crewbase.domain.merge.schema import DependentTable, EntitySchema, MatchRule
    from crewbase.domain.model import EntityType, MergeAudit, Role

type EntityRow = dict[str, object]


@runtime_checkable
class EntityRepository(Protocol):
    """Row-level access to customer, vendor and personnel tables."""

    def load(
        self, schema: EntitySchema, entity_id: UUID, *, for_update: bool = False
    ) -> EntityRow | None: ...

    def update(self, schema: EntitySchema, entity_id: UUID, values: Mapping[str, object]) -> None:
        ...

    def find_matching(
        self, schema: EntitySchema, rule: MatchRule, key: Mapping[str, str], *, exclude_id: UUID
    ) -> Sequence[EntityRow]:
        """Unmerged rows besides ``exclude_id`` whose ``rule`` fields normalize to ``key``."""
        ...


@runtime_checkable
class DependencyRepository(Protocol):
    """Foreign-key rewrites and reads against dependent tables."""

    def repoint(
        self,
        dependent: DependentTable,
        *,
        source_id: UUID,
        target_id: UUID,
        display_name: str | None,
    ) -> int: ...

    def count(self, dependent: DependentTable, entity_id: UUID) -> int: ...

    def total(self, dependent: DependentTable, entity_id: UUID) -> Decimal: ...


@runtime_checkable
class MergeAuditRepository(Protocol):
    """Append-only store of merge audit records."""

    def add(self, audit: MergeAudit) -> None: ...

    def for_entity(self, entity_type: EntityType, entity_id: UUID) -> Sequence[MergeAudit]: ...


@runtime_checkable
class RoleRepository(Protocol):
    def is_admin(self, user_id: str) -> bool: ...

    def grant(self, user_id: str, role: Role) -> None: ...
