from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

import pytest

from crewbase.domain.merge import InvalidArgument
from crewbase.domain.merge.resolve import (
    default_choice,
    resolve_fields,
    sensitive_overrides,
    validate_field_resolutions,
)
from crewbase.domain.merge.schema import CUSTOMER_SCHEMA, PERSONNEL_SCHEMA, VENDOR_SCHEMA
from crewbase.domain.model import FieldChoice

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _customer(**values: object) -> dict[str, object]:
    row: dict[str, object] = {
        "id": uuid4(),
        "created_at": datetime(2024, 1, 1, tzinfo=UTC),
        "updated_at": None,
        "merged_into_id": None,
        "merged_at": None,
        "merged_by": None,
        "merge_reason": None,
        "name": "Acme",
        "email": None,
        "phone": None,
    }
    row.update(values)
    return row


def test_source_choice_copies_value_and_others_keep_target() -> None:
    source = _customer(name="Acme Inc", email="old@acme.com", phone="555-0100")
    target = _customer(name="Acme", email="new@acme.com", phone="555-0199")

    merged = resolve_fields(
        source,
        target,
        {"email": FieldChoice.SOURCE, "phone": FieldChoice.TARGET},
        schema=CUSTOMER_SCHEMA,
        now=NOW,
    )

    assert merged["email"] == "old@acme.com"
    assert merged["phone"] == "555-0199"
    assert merged["name"] == "Acme"
    assert merged["updated_at"] == NOW


def test_system_and_lineage_fields_are_stripped() -> None:
    source = _customer()
    target = _customer()

    merged = resolve_fields(source, target, {}, schema=CUSTOMER_SCHEMA, now=NOW)

    for name in ("id", "created_at", "merged_into_id", "merged_at", "merged_by", "merge_reason"):
        assert name not in merged


def test_protected_fields_are_stripped_per_entity_type() -> None:
    vendor = {"id": uuid4(), "name": "Supply", "is_active": True}
    person = {"id": uuid4(), "first_name": "Jane", "personnel_number": "P-001"}

    merged_vendor = resolve_fields(vendor, dict(vendor), {}, schema=VENDOR_SCHEMA, now=NOW)
    merged_person = resolve_fields(person, dict(person), {}, schema=PERSONNEL_SCHEMA, now=NOW)

    assert "is_active" not in merged_vendor
    assert "personnel_number" not in merged_person


def test_source_choice_for_missing_source_field_keeps_target() -> None:
    source = {"id": uuid4(), "name": "Acme Inc"}
    target = _customer(email="new@acme.com")

    merged = resolve_fields(
        source, target, {"email": FieldChoice.SOURCE}, schema=CUSTOMER_SCHEMA, now=NOW
    )

    assert merged["email"] == "new@acme.com"


def test_validate_rejects_fields_outside_allowlist() -> None:
    with pytest.raises(InvalidArgument) as exc:
        validate_field_resolutions(CUSTOMER_SCHEMA, {"email": "source", "merged_into_id": "source"})

    assert "merged_into_id" in str(exc.value)


def test_validate_rejects_unknown_choice() -> None:
    with pytest.raises(InvalidArgument):
        validate_field_resolutions(CUSTOMER_SCHEMA, {"email": "both"})


def test_validate_normalizes_choices() -> None:
    resolved = validate_field_resolutions(VENDOR_SCHEMA, {"name": " Source ", "tax_id": "target"})

    assert resolved == {"name": FieldChoice.SOURCE, "tax_id": FieldChoice.TARGET}


@pytest.mark.parametrize(
    ("source_value", "target_value", "expected"),
    [
        ("a@x.com", None, FieldChoice.SOURCE),
        ("a@x.com", "", FieldChoice.SOURCE),
        ("a@x.com", "b@x.com", FieldChoice.TARGET),
        (None, None, FieldChoice.TARGET),
        (None, "b@x.com", FieldChoice.TARGET),
    ],
)
def test_default_choice_prefers_target_unless_empty(
    source_value: object, target_value: object, expected: FieldChoice
) -> None:
    assert default_choice(source_value, target_value) is expected


def test_sensitive_overrides_only_flags_changed_source_choices() -> None:
    source = {"tax_id": "11-111", "ssn_last_four": "1234", "name": "A"}
    target = {"tax_id": "22-222", "ssn_last_four": "1234", "name": "B"}

    flagged = sensitive_overrides(
        source,
        target,
        {
            "tax_id": FieldChoice.SOURCE,
            "ssn_last_four": FieldChoice.SOURCE,
            "name": FieldChoice.SOURCE,
        },
    )

    assert flagged == ["tax_id"]
