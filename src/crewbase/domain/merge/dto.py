"""Request and result types for the merge workflow."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import UUID

from crewbase.domain.model import EntityType, FieldChoice

from .errors import InvalidArgument

if TYPE_CHECKING:
    from collections.abc import Mapping
    from decimal import Decimal

    from crewbase.domain.model import JsonObject, JsonValue


@dataclass(frozen=True, slots=True)
class MergeRequest:
    """One request to fold ``source_id`` into ``target_id``."""

    entity_type: EntityType
    source_id: UUID
    target_id: UUID
    field_resolutions: Mapping[str, str] = field(default_factory=dict[str, str])
    quickbooks_resolution: JsonObject | None = None
    merge_reason: str | None = None
    confirm_sensitive: bool = False


@dataclass(frozen=True, slots=True)
class MergeResult:
    """Outcome of a committed merge.

    ``audit_id`` is ``None`` when the audit insert failed under the lenient policy.
    """

    audit_id: UUID | None
    records_updated: dict[str, int]

    @property
    def total_records_updated(self) -> int:
        return sum(self.records_updated.values())

    def to_payload(self) -> dict[str, object]:
        return {
            "success": True,
            "auditId": str(self.audit_id) if self.audit_id is not None else None,
            "recordsUpdated": dict(self.records_updated),
        }


@dataclass(frozen=True, slots=True)
class FieldComparison:
    field_name: str
    source_value: JsonValue
    target_value: JsonValue
    default_choice: FieldChoice
    sensitive: bool = False

    @property
    def differs(self) -> bool:
        return self.source_value != self.target_value


@dataclass(frozen=True, slots=True)
class MergePreview:
    """Read-only impact analysis shown before a merge is confirmed."""

    entity_type: EntityType
    source_id: UUID
    target_id: UUID
    fields: tuple[FieldComparison, ...]
    related_records: dict[str, int]
    totals: dict[str, Decimal]

    def default_resolutions(self) -> dict[str, str]:
        return {
            comparison.field_name: comparison.default_choice.value for comparison in self.fields
        }

    def to_payload(self) -> dict[str, object]:
        return {
            "entityType": self.entity_type.value,
            "sourceId": str(self.source_id),
            "targetId": str(self.target_id),
            "fields": [
                {
                    "field": comparison.field_name,
                    "sourceValue": comparison.source_value,
                    "targetValue": comparison.target_value,
                    "defaultChoice": comparison.default_choice.value,
                    "sensitive": comparison.sensitive,
                    "differs": comparison.differs,
                }
                for comparison in self.fields
            ],
            "relatedRecords": dict(self.related_records),
            "totals": {table: str(amount) for table, amount in self.totals.items()},
        }


def parse_entity_type(value: str) -> EntityType:
    try:
        return EntityType(value.strip().lower())
    except ValueError as exc:
        raise InvalidArgument(f"Invalid entity type: {value!r}") from exc


def parse_entity_id(value: str | UUID, *, role: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(value.strip())
    except ValueError as exc:
        raise InvalidArgument(f"Invalid {role} id: {value!r}") from exc
