"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from decimal import Decimal
from logging import getLogger
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError

from crewbase.adapters.sqlalchemy.mappings import (
    mapper_registry,
    merge_audit_table,
    user_role_table,
)
from crewbase.domain.merge.errors import AuditWriteFailure, PersistenceFailure
from crewbase.domain.merge.schema import PHONE_SEPARATORS
from crewbase.domain.model import MergeAudit, Role

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from uuid import UUID

    from sqlalchemy import ColumnElement, CursorResult, Table
    from sqlalchemy.orm import Session

    from crewbase.domain.merge.schema import DependentTable, EntitySchema, MatchRule
    from crewbase.domain.model import EntityType
    from crewbase.domain.ports.persistence import EntityRow

log = getLogger(__name__)


def _table(name: str) -> Table:
    return mapper_registry.metadata.tables[name]


def _normalized(column: ColumnElement[Any], *, digits_only: bool) -> ColumnElement[Any]:
    expr = func.lower(func.trim(column))
    if digits_only:
        for separator in PHONE_SEPARATORS:
            expr = func.replace(expr, separator, "")
    return expr


class SqlAlchemyEntityRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def load(
        self, schema: EntitySchema, entity_id: UUID, *, for_update: bool = False
    ) -> EntityRow | None:
        table = _table(schema.table)
        stmt = select(table).where(table.c.id == entity_id)
        if for_update:
            stmt = stmt.with_for_update()
        row = self.session.execute(stmt).mappings().one_or_none()
        return dict(row) if row is not None else None

    def update(self, schema: EntitySchema, entity_id: UUID, values: Mapping[str, object]) -> None:
        table = _table(schema.table)
        stmt = update(table).where(table.c.id == entity_id).values(dict(values))
        try:
            result = cast("CursorResult[Any]", self.session.execute(stmt))
        except SQLAlchemyError as exc:
            raise PersistenceFailure(
                f"Failed to update {schema.label} {entity_id}: {exc}"
            ) from exc
        if result.rowcount != 1:
            raise PersistenceFailure(
                f"Expected to update one {schema.label} row for {entity_id}, "
                f"updated {result.rowcount}"
            )

    def find_matching(
        self, schema: EntitySchema, rule: MatchRule, key: Mapping[str, str], *, exclude_id: UUID
    ) -> Sequence[EntityRow]:
        table = _table(schema.table)
        stmt = (
            select(table)
            .where(table.c.id != exclude_id)
            .where(table.c.merged_into_id.is_(None))
        )
        for name, value in key.items():
            stmt = stmt.where(_normalized(table.c[name], digits_only=rule.digits_only) == value)
        return [dict(row) for row in self.session.execute(stmt).mappings()]


class SqlAlchemyDependencyRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def repoint(
        self,
        dependent: DependentTable,
        *,
        source_id: UUID,
        target_id: UUID,
        display_name: str | None,
    ) -> int:
        table = _table(dependent.table)
        values: dict[str, object] = {dependent.foreign_key: target_id}
        if dependent.name_column is not None:
            values[dependent.name_column] = display_name
        stmt = update(table).where(table.c[dependent.foreign_key] == source_id).values(values)
        try:
            result = cast("CursorResult[Any]", self.session.execute(stmt))
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Failed to update {dependent.table}: {exc}") from exc
        return result.rowcount

    def count(self, dependent: DependentTable, entity_id: UUID) -> int:
        table = _table(dependent.table)
        stmt = (
            select(func.count())
            .select_from(table)
            .where(table.c[dependent.foreign_key] == entity_id)
        )
        return self.session.execute(stmt).scalar_one()

    def total(self, dependent: DependentTable, entity_id: UUID) -> Decimal:
        if dependent.amount_column is None:
            return Decimal(0)
        table = _table(dependent.table)
        stmt = select(func.coalesce(func.sum(table.c[dependent.amount_column]), 0)).where(
            table.c[dependent.foreign_key] == entity_id
        )
        return Decimal(str(self.session.execute(stmt).scalar_one()))


class SqlAlchemyMergeAuditRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, audit: MergeAudit) -> None:
        """Insert ``audit`` inside a savepoint so a failure leaves the merge intact."""

        try:
            with self.session.begin_nested():
                self.session.add(audit)
        except SQLAlchemyError as exc:
            raise AuditWriteFailure(f"Failed to write merge audit {audit.id}: {exc}") from exc

    def for_entity(self, entity_type: EntityType, entity_id: UUID) -> Sequence[MergeAudit]:
        stmt = (
            select(MergeAudit)
            .where(merge_audit_table.c.entity_type == entity_type)
            .where(
                or_(
                    merge_audit_table.c.source_entity_id == entity_id,
                    merge_audit_table.c.target_entity_id == entity_id,
                )
            )
            .order_by(merge_audit_table.c.merged_at.desc())
        )
        return self.session.execute(stmt).scalars().all()


class SqlAlchemyRoleRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def is_admin(self, user_id: str) -> bool:
        stmt = (
            select(user_role_table.c.id)
            .where(user_role_table.c.user_id == user_id)
            .where(user_role_table.c.role == Role.ADMIN)
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none() is not None

    def grant(self, user_id: str, role: Role) -> None:
        self.session.execute(user_role_table.insert().values(user_id=user_id, role=role))
