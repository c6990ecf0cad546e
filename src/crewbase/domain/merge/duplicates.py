"""Rank unmerged records that look like the same customer, vendor or person."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING
from uuid import UUID

from .snapshots import json_value

if TYPE_CHECKING:
    from collections.abc import Mapping

    from crewbase.domain.model import JsonObject, JsonValue
    from crewbase.domain.ports.persistence import EntityRepository, EntityRow

    from .schema import EntitySchema, MatchRule

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DuplicateMatch:
    """One candidate, scored by the strongest rule it satisfied."""

    duplicate_id: UUID
    name: str | None
    match_type: str
    match_score: int
    details: Mapping[str, JsonValue] = field(default_factory=dict)

    def to_payload(self) -> JsonObject:
        payload: JsonObject = {
            "duplicate_id": str(self.duplicate_id),
            "duplicate_name": self.name,
        }
        for name, value in self.details.items():
            payload[f"duplicate_{name}"] = value
        payload["match_type"] = self.match_type
        payload["match_score"] = self.match_score
        return payload


def _row_id(row: EntityRow) -> UUID:
    value = row["id"]
    return value if isinstance(value, UUID) else UUID(str(value))


def find_candidates(
    entities: EntityRepository, schema: EntitySchema, row: EntityRow
) -> tuple[DuplicateMatch, ...]:
    """Apply every match rule of ``schema`` to ``row``, best candidates first.

    A candidate hit by several rules is reported once, under its highest score.
    Rules whose fields are blank on ``row`` are skipped.
    """

    entity_id = _row_id(row)

    best: dict[UUID, tuple[MatchRule, EntityRow]] = {}
    for rule in schema.match_rules:
        key = rule.key(row)
        if key is None:
            continue
        for candidate in entities.find_matching(schema, rule, key, exclude_id=entity_id):
            candidate_id = _row_id(candidate)
            current = best.get(candidate_id)
            if current is None or rule.score > current[0].score:
                best[candidate_id] = (rule, candidate)

    matches = [
        DuplicateMatch(
            duplicate_id=candidate_id,
            name=schema.display_name(candidate),
            match_type=rule.match_type,
            match_score=rule.score,
            details={
                name: json_value(candidate.get(name)) for name in schema.duplicate_detail_fields
            },
        )
        for candidate_id, (rule, candidate) in best.items()
    ]
    matches.sort(key=lambda match: (-match.match_score, match.name or "", str(match.duplicate_id)))
    log.debug("Found %d %s duplicate candidates for %s", len(matches), schema.label, entity_id)
    return tuple(matches)
