"""Merge orchestration: preconditions, mutation sequence, audit, sync."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from logging import getLogger
from typing import TYPE_CHECKING

from .audit import build_audit, record_audit
from .dto import FieldComparison, MergePreview, MergeResult
from .duplicates import find_candidates
from .errors import InvalidArgument, InvalidState, NotFound, PermissionDenied, Unauthenticated
from .locking import DEFAULT_LOCKS
from .repoint import repoint_dependents
from .resolve import (
    default_choice,
    resolve_fields,
    sensitive_overrides,
    validate_field_resolutions,
)
from .retire import retire_source
from .schema import SENSITIVE_FIELDS, schema_for
from .snapshots import json_snapshot, json_value, load_pair

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from uuid import UUID

    from crewbase.domain.model import Actor, EntityType, MergeAudit
    from crewbase.domain.ports.persistence import EntityRow
    from crewbase.domain.ports.sync import VendorSyncTrigger
    from crewbase.domain.ports.unit_of_work import MergeUnitOfWork

    from .duplicates import DuplicateMatch
    from .dto import MergeRequest
    from .locking import MergeLocks
    from .schema import EntitySchema
    from .snapshots import EntityPair

type MergeUnitOfWorkFactory = Callable[[], MergeUnitOfWork]

log = getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def merge_entities(  # noqa: PLR0913
    request: MergeRequest,
    *,
    actor: Actor | None,
    unit_of_work_factory: MergeUnitOfWorkFactory,
    sync_trigger: VendorSyncTrigger | None = None,
    locks: MergeLocks = DEFAULT_LOCKS,
    strict_audit: bool = False,
    now_provider: Callable[[], datetime] = _utcnow,
) -> MergeResult:
    """Fold ``request.source_id`` into ``request.target_id``.

    Every precondition is checked before the first write. The target update,
    dependent repoints, source retirement and audit insert share one unit of
    work, so any failure leaves the store untouched.
    """

    current_actor = ensure_authenticated(actor)
    schema = schema_for(request.entity_type)
    source_id, target_id = request.source_id, request.target_id
    log.info(
        "Starting %s merge %s -> %s by %s",
        schema.label,
        source_id,
        target_id,
        current_actor.user_id,
    )

    with (
        locks.hold(schema.entity_type, source_id, target_id),
        unit_of_work_factory() as uow,
    ):
        repositories = uow.repositories
        ensure_admin(uow, current_actor)
        ensure_distinct(source_id, target_id)
        resolutions = validate_field_resolutions(schema, request.field_resolutions)

        pair = load_pair(repositories.entities, schema, source_id, target_id)
        ensure_unmerged(schema, pair)

        overridden = sensitive_overrides(pair.source, pair.target, resolutions)
        if overridden and not request.confirm_sensitive:
            raise InvalidArgument(
                "Sensitive fields require explicit confirmation: " + ", ".join(overridden)
            )

        now = now_provider()
        merged = resolve_fields(pair.source, pair.target, resolutions, schema=schema, now=now)
        repositories.entities.update(schema, target_id, merged)

        records_updated = repoint_dependents(
            repositories.dependencies,
            schema,
            source_id=source_id,
            target_id=target_id,
            display_name=schema.display_name(merged),
        )
        retire_source(
            repositories.entities,
            schema,
            source_id=source_id,
            target_id=target_id,
            actor=current_actor,
            reason=request.merge_reason,
            now=now,
        )

        audit = build_audit(
            schema,
            source_id=source_id,
            target_id=target_id,
            source_snapshot=json_snapshot(pair.source),
            target_snapshot=json_snapshot(pair.target),
            merged_snapshot=json_snapshot(merged),
            field_resolutions=resolutions,
            records_updated=records_updated,
            actor=current_actor,
            quickbooks_resolution=request.quickbooks_resolution,
            notes=request.merge_reason,
            now=now,
        )
        audit_id = record_audit(repositories.audits, audit, strict=strict_audit)
        uow.commit()

    log.info(
        "Finished %s merge %s -> %s: %s dependent rows repointed",
        schema.label,
        source_id,
        target_id,
        sum(records_updated.values()),
    )

    if schema.syncs_externally and sync_trigger is not None:
        _fire_sync(sync_trigger, target_id)

    return MergeResult(audit_id=audit_id, records_updated=records_updated)


def preview_merge(
    entity_type: EntityType,
    source_id: UUID,
    target_id: UUID,
    *,
    actor: Actor | None,
    unit_of_work_factory: MergeUnitOfWorkFactory,
) -> MergePreview:
    """Describe what merging ``source_id`` into ``target_id`` would change."""

    current_actor = ensure_authenticated(actor)
    schema = schema_for(entity_type)

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        ensure_admin(uow, current_actor)
        ensure_distinct(source_id, target_id)
        pair = load_pair(repositories.entities, schema, source_id, target_id, for_update=False)
        ensure_unmerged(schema, pair)

        related: dict[str, int] = {}
        totals: dict[str, Decimal] = {}
        for dependent in schema.dependents:
            related[dependent.table] = repositories.dependencies.count(dependent, source_id)
            if dependent.amount_column is not None:
                totals[dependent.table] = repositories.dependencies.total(dependent, source_id)

    return MergePreview(
        entity_type=schema.entity_type,
        source_id=source_id,
        target_id=target_id,
        fields=_compare_fields(schema, pair.source, pair.target),
        related_records=related,
        totals=totals,
    )


def merge_history(
    entity_type: EntityType,
    entity_id: UUID,
    *,
    actor: Actor | None,
    unit_of_work_factory: MergeUnitOfWorkFactory,
) -> Sequence[MergeAudit]:
    """Audit records naming ``entity_id`` as source or target, newest first."""

    current_actor = ensure_authenticated(actor)
    with unit_of_work_factory() as uow:
        ensure_admin(uow, current_actor)
        return list(uow.repositories.audits.for_entity(entity_type, entity_id))


def find_duplicates(
    entity_type: EntityType,
    entity_id: UUID,
    *,
    actor: Actor | None,
    unit_of_work_factory: MergeUnitOfWorkFactory,
) -> tuple[DuplicateMatch, ...]:
    """Unmerged records of the same type that likely describe ``entity_id``."""

    current_actor = ensure_authenticated(actor)
    schema = schema_for(entity_type)
    with unit_of_work_factory() as uow:
        ensure_admin(uow, current_actor)
        row = uow.repositories.entities.load(schema, entity_id)
        if row is None:
            raise NotFound(f"{schema.label.capitalize()} not found: {entity_id}")
        merged_into = row.get("merged_into_id")
        if merged_into is not None:
            raise InvalidState(
                f"{schema.label.capitalize()} {entity_id} already merged into {merged_into}"
            )
        return find_candidates(uow.repositories.entities, schema, row)


def ensure_authenticated(actor: Actor | None) -> Actor:
    if actor is None or not actor.user_id.strip():
        raise Unauthenticated("Unauthorized")
    return actor


def ensure_admin(uow: MergeUnitOfWork, actor: Actor) -> None:
    if not uow.repositories.roles.is_admin(actor.user_id):
        raise PermissionDenied("Admin access required")


def ensure_distinct(source_id: UUID, target_id: UUID) -> None:
    if source_id == target_id:
        raise InvalidArgument("Cannot merge an entity with itself")


def ensure_unmerged(schema: EntitySchema, pair: EntityPair) -> None:
    for role, row in (("Source", pair.source), ("Target", pair.target)):
        merged_into = row.get("merged_into_id")
        if merged_into is not None:
            raise InvalidState(
                f"{role} {schema.label} {row.get('id')} already merged into {merged_into}"
            )


def _compare_fields(
    schema: EntitySchema, source: EntityRow, target: EntityRow
) -> tuple[FieldComparison, ...]:
    return tuple(
        FieldComparison(
            field_name=name,
            source_value=json_value(source.get(name)),
            target_value=json_value(target.get(name)),
            default_choice=default_choice(source.get(name), target.get(name)),
            sensitive=name in SENSITIVE_FIELDS,
        )
        for name in schema.mergeable_fields
    )


def _fire_sync(sync_trigger: VendorSyncTrigger, vendor_id: UUID) -> None:
    try:
        sync_trigger(vendor_id)
    except Exception:
        # the merge is committed; nothing raised here may reach the caller
        log.exception("Accounting sync failed for vendor %s; merge already committed", vendor_id)
    else:
        log.info("Triggered accounting sync for vendor %s", vendor_id)
