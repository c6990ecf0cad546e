"""Declarative description of every mergeable record type.

The merge engine is generic; everything type-specific (table names, copyable
fields, dependent foreign keys, denormalized name columns, the retirement
marker and the duplicate match rules) lives in :data:`ENTITY_SCHEMAS`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from crewbase.domain.model import EntityType

if TYPE_CHECKING:
    from collections.abc import Mapping

LINEAGE_FIELDS: Final[tuple[str, ...]] = (
    "merged_into_id",
    "merged_at",
    "merged_by",
    "merge_reason",
)
SYSTEM_FIELDS: Final[frozenset[str]] = frozenset({"id", "created_at", *LINEAGE_FIELDS})
SENSITIVE_FIELDS: Final[frozenset[str]] = frozenset({"tax_id", "ssn_last_four", "ssn_full"})
PHONE_SEPARATORS: Final = " .-()+"


@dataclass(frozen=True, slots=True)
class DependentTable:
    """A table holding a foreign key to a mergeable record."""

    table: str
    foreign_key: str
    name_column: str | None = None
    amount_column: str | None = None


@dataclass(frozen=True, slots=True)
class MatchRule:
    """Records agreeing on every field in ``fields`` are duplicate candidates.

    Values compare case-insensitively after trimming; ``digits_only`` also drops
    the usual phone separators.
    """

    match_type: str
    fields: tuple[str, ...]
    score: int
    digits_only: bool = False

    def normalize(self, value: object) -> str | None:
        text = str(value or "").strip().lower()
        if self.digits_only:
            for separator in PHONE_SEPARATORS:
                text = text.replace(separator, "")
        return text or None

    def key(self, row: Mapping[str, object]) -> dict[str, str] | None:
        """Normalized values of ``row`` for this rule, or ``None`` if any is blank."""
        values: dict[str, str] = {}
        for name in self.fields:
            value = self.normalize(row.get(name))
            if value is None:
                return None
            values[name] = value
        return values


@dataclass(frozen=True, slots=True)
class EntitySchema:
    entity_type: EntityType
    table: str
    mergeable_fields: tuple[str, ...]
    dependents: tuple[DependentTable, ...]
    protected_fields: frozenset[str] = frozenset()
    retire_values: tuple[tuple[str, object], ...] = ()
    display_name_fields: tuple[str, ...] = ("name",)
    syncs_externally: bool = False
    match_rules: tuple[MatchRule, ...] = ()

    @property
    def label(self) -> str:
        return self.entity_type.value

    @property
    def excluded_fields(self) -> frozenset[str]:
        """Columns the field resolver never writes to the target."""
        return SYSTEM_FIELDS | self.protected_fields

    @property
    def duplicate_detail_fields(self) -> tuple[str, ...]:
        names = (name for rule in self.match_rules for name in rule.fields)
        return tuple(dict.fromkeys(n for n in names if n not in self.display_name_fields))

    def is_mergeable(self, field_name: str) -> bool:
        return field_name in self.mergeable_fields

    def display_name(self, row: Mapping[str, object]) -> str | None:
        parts = (str(row.get(name) or "").strip() for name in self.display_name_fields)
        name = " ".join(part for part in parts if part)
        return name or None


CUSTOMER_SCHEMA: Final = EntitySchema(
    entity_type=EntityType.CUSTOMER,
    table="customers",
    mergeable_fields=(
        "name",
        "email",
        "phone",
        "company",
        "address",
        "jobsite_address",
        "tax_exempt",
        "customer_type",
        "notes",
    ),
    dependents=(
        DependentTable("projects", "customer_id"),
        DependentTable("estimates", "customer_id", name_column="customer_name"),
        DependentTable(
            "invoices", "customer_id", name_column="customer_name", amount_column="total"
        ),
        DependentTable("job_orders", "customer_id", name_column="customer_name"),
        DependentTable("change_orders", "customer_id", name_column="customer_name"),
        DependentTable("activities", "customer_id"),
        DependentTable("appointments", "customer_id"),
        DependentTable("insurance_claims", "customer_id"),
    ),
    match_rules=(
        MatchRule("email", ("email",), 90),
        MatchRule("phone", ("phone",), 80, digits_only=True),
        MatchRule("name", ("name",), 70),
        MatchRule("company", ("company",), 60),
    ),
)

VENDOR_SCHEMA: Final = EntitySchema(
    entity_type=EntityType.VENDOR,
    table="vendors",
    mergeable_fields=(
        "name",
        "email",
        "phone",
        "company",
        "address",
        "city",
        "state",
        "zip",
        "vendor_type",
        "tax_id",
        "notes",
    ),
    dependents=(
        DependentTable("purchase_orders", "vendor_id", name_column="vendor_name"),
        DependentTable(
            "vendor_bills", "vendor_id", name_column="vendor_name", amount_column="total"
        ),
        DependentTable("change_orders", "vendor_id", name_column="vendor_name"),
        DependentTable("personnel", "linked_vendor_id"),
    ),
    protected_fields=frozenset({"is_active"}),
    retire_values=(("is_active", False),),
    syncs_externally=True,
    match_rules=(
        MatchRule("tax_id", ("tax_id",), 100),
        MatchRule("email", ("email",), 90),
        MatchRule("phone", ("phone",), 80, digits_only=True),
        MatchRule("name", ("name",), 70),
        MatchRule("company", ("company",), 60),
    ),
)

PERSONNEL_SCHEMA: Final = EntitySchema(
    entity_type=EntityType.PERSONNEL,
    table="personnel",
    mergeable_fields=(
        "first_name",
        "last_name",
        "email",
        "phone",
        "address",
        "city",
        "state",
        "zip",
        "ssn_last_four",
        "date_of_birth",
        "citizenship_status",
        "immigration_status",
    ),
    dependents=(
        DependentTable("time_entries", "personnel_id"),
        DependentTable("personnel_payments", "personnel_id", amount_column="gross_amount"),
        DependentTable("personnel_certifications", "personnel_id"),
        DependentTable("personnel_languages", "personnel_id"),
        DependentTable("personnel_capabilities", "personnel_id"),
        DependentTable("emergency_contacts", "personnel_id"),
        DependentTable("personnel_project_assignments", "personnel_id"),
        DependentTable("project_labor_expenses", "personnel_id"),
    ),
    # the surviving record keeps its own personnel number
    protected_fields=frozenset({"personnel_number"}),
    retire_values=(("status", "inactive"),),
    display_name_fields=("first_name", "last_name"),
    match_rules=(
        MatchRule("ssn", ("ssn_last_four", "last_name"), 95),
        MatchRule("email", ("email",), 90),
        MatchRule("phone", ("phone",), 80, digits_only=True),
        MatchRule("name", ("first_name", "last_name"), 70),
    ),
)

ENTITY_SCHEMAS: Final[Mapping[EntityType, EntitySchema]] = {
    schema.entity_type: schema for schema in (CUSTOMER_SCHEMA, VENDOR_SCHEMA, PERSONNEL_SCHEMA)
}


def schema_for(entity_type: EntityType) -> EntitySchema:
    return ENTITY_SCHEMAS[entity_type]
