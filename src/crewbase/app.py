"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from crewbase.adapters.quickbooks import QuickBooksVendorSync
from crewbase.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyMergeUnitOfWork,
    is_started,
    startup,
)
from crewbase.config import get_merge_config, get_quickbooks_sync_config
from crewbase.domain.merge import (
    find_duplicates,
    merge_entities,
    merge_history,
    preview_merge,
    schema_for,
)
from crewbase.domain.ports.unit_of_work import MergeUnitOfWork

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from crewbase.domain.merge import DuplicateMatch, MergePreview, MergeRequest, MergeResult
    from crewbase.domain.model import Actor, EntityType, MergeAudit, Role
    from crewbase.domain.ports.sync import VendorSyncTrigger

UnitOfWorkFactory = Callable[[], MergeUnitOfWork]


log = getLogger(__name__)


def _ensure_started() -> None:
    if not is_started():
        startup()


def build_vendor_sync_trigger() -> VendorSyncTrigger | None:
    """Return the accounting sync trigger, or ``None`` when it is not configured."""

    config = get_quickbooks_sync_config()
    if not config.enabled:
        log.debug("QUICKBOOKS_SYNC_URL not set; vendor merges will not trigger a sync")
        return None
    return QuickBooksVendorSync(config=config)


def run_merge(
    request: MergeRequest,
    *,
    actor: Actor | None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    sync_trigger: VendorSyncTrigger | None = None,
) -> MergeResult:
    """Merge two records using the configured adapters."""

    _ensure_started()
    effective_uow = unit_of_work_factory or SqlAlchemyMergeUnitOfWork
    effective_sync = sync_trigger
    if effective_sync is None and schema_for(request.entity_type).syncs_externally:
        effective_sync = build_vendor_sync_trigger()
    return merge_entities(
        request,
        actor=actor,
        unit_of_work_factory=effective_uow,
        sync_trigger=effective_sync,
        strict_audit=get_merge_config().strict_audit,
    )


def run_preview(
    entity_type: EntityType,
    source_id: UUID,
    target_id: UUID,
    *,
    actor: Actor | None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> MergePreview:
    _ensure_started()
    return preview_merge(
        entity_type,
        source_id,
        target_id,
        actor=actor,
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyMergeUnitOfWork,
    )


def run_history(
    entity_type: EntityType,
    entity_id: UUID,
    *,
    actor: Actor | None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> Sequence[MergeAudit]:
    _ensure_started()
    return merge_history(
        entity_type,
        entity_id,
        actor=actor,
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyMergeUnitOfWork,
    )


def run_find_duplicates(
    entity_type: EntityType,
    entity_id: UUID,
    *,
    actor: Actor | None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> tuple[DuplicateMatch, ...]:
    _ensure_started()
    return find_duplicates(
        entity_type,
        entity_id,
        actor=actor,
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyMergeUnitOfWork,
    )


def grant_role(user_id: str, role: Role) -> None:
    """Grant ``role`` to ``user_id`` (bootstrapping the first administrator)."""

    _ensure_started()
    with SqlAlchemyMergeUnitOfWork() as uow:
        uow.repositories.roles.grant(user_id, role)
        uow.commit()
    log.info("Granted %s to %s", role.value, user_id)
