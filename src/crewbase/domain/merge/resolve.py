"""Field resolution: compute the state the surviving record becomes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from crewbase.domain.model import FieldChoice

from .errors import InvalidArgument
from .schema import SENSITIVE_FIELDS

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from crewbase.domain.ports.persistence import EntityRow

    from .schema import EntitySchema


def validate_field_resolutions(
    schema: EntitySchema,
    field_resolutions: Mapping[str, str],
) -> dict[str, FieldChoice]:
    """Check caller-supplied choices against the copyable-field allowlist."""

    unknown = sorted(name for name in field_resolutions if not schema.is_mergeable(name))
    if unknown:
        raise InvalidArgument(
            f"Fields cannot be merged for {schema.label}: {', '.join(unknown)}"
        )

    resolved: dict[str, FieldChoice] = {}
    for name, choice in field_resolutions.items():
        try:
            resolved[name] = FieldChoice(str(choice).strip().lower())
        except ValueError as exc:
            raise InvalidArgument(
                f"Invalid choice for {name}: {choice!r} (expected 'source' or 'target')"
            ) from exc
    return resolved


def resolve_fields(
    source: Mapping[str, object],
    target: Mapping[str, object],
    field_resolutions: Mapping[str, FieldChoice],
    *,
    schema: EntitySchema,
    now: datetime,
) -> EntityRow:
    """Return the merged row to persist on the target.

    Starts from the target, copies every field chosen as ``source`` that exists on
    the source, then strips system, lineage and protected columns.
    """

    merged: EntityRow = dict(target)
    for name, choice in field_resolutions.items():
        if choice is FieldChoice.SOURCE and name in source:
            merged[name] = source[name]

    for name in schema.excluded_fields:
        merged.pop(name, None)
    merged["updated_at"] = now
    return merged


def default_choice(source_value: object, target_value: object) -> FieldChoice:
    """Keep the target unless it is empty and the source has a value."""

    if not target_value and source_value:
        return FieldChoice.SOURCE
    return FieldChoice.TARGET


def sensitive_overrides(
    source: Mapping[str, object],
    target: Mapping[str, object],
    field_resolutions: Mapping[str, FieldChoice],
) -> list[str]:
    """Sensitive fields whose value would change on the target."""

    return sorted(
        name
        for name, choice in field_resolutions.items()
        if name in SENSITIVE_FIELDS
        and choice is FieldChoice.SOURCE
        and source.get(name) != target.get(name)
    )
