"""Move dependent records from the retired entity to the surviving one."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

    from crewbase.domain.ports.persistence import DependencyRepository

    from .schema import EntitySchema

log = getLogger(__name__)


def repoint_dependents(
    dependencies: DependencyRepository,
    schema: EntitySchema,
    *,
    source_id: UUID,
    target_id: UUID,
    display_name: str | None,
) -> dict[str, int]:
    """Rewrite every foreign key to ``source_id`` and return per-table counts.

    Tables without matching rows still appear in the result with ``0``. The same
    table may be listed for several entity types (``change_orders``), but never
    twice for one type, so counts are keyed by table name.
    """

    counts: dict[str, int] = {}
    for dependent in schema.dependents:
        updated = dependencies.repoint(
            dependent,
            source_id=source_id,
            target_id=target_id,
            display_name=display_name if dependent.name_column else None,
        )
        counts[dependent.table] = updated
        log.debug(
            "Repointed %s %s.%s rows from %s to %s",
            updated,
            dependent.table,
            dependent.foreign_key,
            source_id,
            target_id,
        )
    return counts
