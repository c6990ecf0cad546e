"""Flag the losing record as merged without deleting it."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from crewbase.domain.model import Actor
    from crewbase.domain.ports.persistence import EntityRepository, EntityRow

    from .schema import EntitySchema

log = getLogger(__name__)


def retirement_values(
    schema: EntitySchema,
    *,
    target_id: UUID,
    actor: Actor,
    reason: str | None,
    now: datetime,
) -> EntityRow:
    values: EntityRow = dict(schema.retire_values)
    values.update(
        merged_into_id=target_id,
        merged_at=now,
        merged_by=actor.user_id,
        merge_reason=reason,
        updated_at=now,
    )
    return values


def retire_source(
    entities: EntityRepository,
    schema: EntitySchema,
    *,
    source_id: UUID,
    target_id: UUID,
    actor: Actor,
    reason: str | None,
    now: datetime,
) -> None:
    values = retirement_values(schema, target_id=target_id, actor=actor, reason=reason, now=now)
    entities.update(schema, source_id, values)
    log.info("Retired %s %s into %s", schema.label, source_id, target_id)
