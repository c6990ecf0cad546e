"""Load both sides of a merge and render rows as JSON-safe snapshots."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from .errors import NotFound

if TYPE_CHECKING:
    from collections.abc import Mapping
    from uuid import UUID

    from crewbase.domain.model import JsonObject, JsonValue
    from crewbase.domain.ports.persistence import EntityRepository, EntityRow

    from .schema import EntitySchema

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EntityPair:
    source: EntityRow
    target: EntityRow


def load_pair(
    entities: EntityRepository,
    schema: EntitySchema,
    source_id: UUID,
    target_id: UUID,
    *,
    for_update: bool = True,
) -> EntityPair:
    """Read source and target rows, locking them in ascending id order.

    A stable order keeps two merges over the same pair from deadlocking.
    """

    roles = {source_id: "Source", target_id: "Target"}
    rows: dict[UUID, EntityRow] = {}
    for entity_id in sorted(roles, key=str):
        row = entities.load(schema, entity_id, for_update=for_update)
        if row is None:
            raise NotFound(f"{roles[entity_id]} {schema.label} not found: {entity_id}")
        rows[entity_id] = row
    log.debug("Loaded %s pair %s -> %s", schema.label, source_id, target_id)
    return EntityPair(source=rows[source_id], target=rows[target_id])


def json_value(value: object) -> JsonValue:
    match value:
        case None | bool() | int() | float() | str():
            return value
        case datetime() | date():
            return value.isoformat()
        case _:
            return str(value)


def json_snapshot(row: Mapping[str, object]) -> JsonObject:
    return {key: json_value(value) for key, value in row.items()}
