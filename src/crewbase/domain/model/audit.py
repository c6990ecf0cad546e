"""Audit records for entity merges."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

if TYPE_CHECKING:
    from .enums import EntityType

type JsonValue = str | int | float | bool | None | list[JsonValue] | dict[str, JsonValue]
type JsonObject = dict[str, JsonValue]


@dataclass(eq=False, kw_only=True)
class MergeAudit:
    """Append-only record of one completed merge.

    Snapshots are JSON-compatible copies of the rows as they were read inside the
    merge transaction, so they can be compared field by field with later reads.
    """

    entity_type: EntityType
    source_entity_id: UUID
    target_entity_id: UUID
    source_entity_snapshot: JsonObject
    target_entity_snapshot: JsonObject
    merged_entity_snapshot: JsonObject
    field_overrides: dict[str, str]
    related_records_updated: dict[str, int]
    merged_by: str
    merged_by_email: str | None = None
    quickbooks_resolution: JsonObject | None = None
    notes: str | None = None
    is_reversed: bool = False
    merged_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    id: UUID = field(default_factory=uuid4)
