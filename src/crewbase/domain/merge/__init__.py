"""Entity merge workflow: consolidate duplicate customers, vendors or personnel."""

from __future__ import annotations

from .dto import (
    FieldComparison,
    MergePreview,
    MergeRequest,
    MergeResult,
    parse_entity_id,
    parse_entity_type,
)
from .duplicates import DuplicateMatch, find_candidates
from .errors import (
    AuditWriteFailure,
    InvalidArgument,
    InvalidState,
    MergeError,
    NotFound,
    PermissionDenied,
    PersistenceFailure,
    Unauthenticated,
)
from .locking import DEFAULT_LOCKS, MergeLocks
from .schema import ENTITY_SCHEMAS, DependentTable, EntitySchema, MatchRule, schema_for
from .service import (
    MergeUnitOfWorkFactory,
    find_duplicates,
    merge_entities,
    merge_history,
    preview_merge,
)

__all__ = [
    "DEFAULT_LOCKS",
    "ENTITY_SCHEMAS",
    "AuditWriteFailure",
    "DependentTable",
    "DuplicateMatch",
    "EntitySchema",
    "FieldComparison",
    "InvalidArgument",
    "InvalidState",
    "MatchRule",
    "MergeError",
    "MergeLocks",
    "MergePreview",
    "MergeRequest",
    "MergeResult",
    "MergeUnitOfWorkFactory",
    "NotFound",
    "PermissionDenied",
    "PersistenceFailure",
    "Unauthenticated",
    "find_candidates",
    "find_duplicates",
    "merge_entities",
    "merge_history",
    "parse_entity_id",
    "parse_entity_type",
    "preview_merge",
    "schema_for",
]
