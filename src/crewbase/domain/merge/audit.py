"""Write the immutable audit record of a merge."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from crewbase.domain.model import MergeAudit

from .errors import AuditWriteFailure, PersistenceFailure

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime
    from uuid import UUID

    from crewbase.domain.model import Actor, FieldChoice, JsonObject
    from crewbase.domain.ports.persistence import MergeAuditRepository

    from .schema import EntitySchema

log = getLogger(__name__)


def build_audit(  # noqa: PLR0913
    schema: EntitySchema,
    *,
    source_id: UUID,
    target_id: UUID,
    source_snapshot: JsonObject,
    target_snapshot: JsonObject,
    merged_snapshot: JsonObject,
    field_resolutions: Mapping[str, FieldChoice],
    records_updated: Mapping[str, int],
    actor: Actor,
    quickbooks_resolution: JsonObject | None,
    notes: str | None,
    now: datetime,
) -> MergeAudit:
    return MergeAudit(
        entity_type=schema.entity_type,
        source_entity_id=source_id,
        target_entity_id=target_id,
        source_entity_snapshot=source_snapshot,
        target_entity_snapshot=target_snapshot,
        merged_entity_snapshot=merged_snapshot,
        field_overrides={name: choice.value for name, choice in field_resolutions.items()},
        related_records_updated=dict(records_updated),
        merged_by=actor.user_id,
        merged_by_email=actor.contact,
        quickbooks_resolution=quickbooks_resolution,
        notes=notes,
        merged_at=now,
    )


def record_audit(
    audits: MergeAuditRepository,
    audit: MergeAudit,
    *,
    strict: bool = False,
) -> UUID | None:
    """Append ``audit`` and return its id.

    Under the lenient policy a failed write is logged and ``None`` is returned so
    the merge itself still commits. With ``strict`` the failure aborts the merge.
    """

    try:
        audits.add(audit)
    except AuditWriteFailure as exc:
        if strict:
            raise PersistenceFailure(f"Failed to record merge audit: {exc}") from exc
        log.exception(
            "Failed to record audit for %s merge %s -> %s",
            audit.entity_type.value,
            audit.source_entity_id,
            audit.target_entity_id,
        )
        return None
    log.info("Recorded merge audit %s", audit.id)
    return audit.id
