"""Initial schema: mergeable records, dependents, roles and merge audit.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import sqlalchemy as sa
from alembic import op

if TYPE_CHECKING:
    from collections.abc import Sequence

revision: str = "0001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

CUSTOMER_DEPENDENTS: tuple[str, ...] = (
    "projects",
    "estimates",
    "invoices",
    "job_orders",
    "activities",
    "appointments",
    "insurance_claims",
)
VENDOR_DEPENDENTS: tuple[str, ...] = ("purchase_orders", "vendor_bills")
PERSONNEL_DEPENDENTS: tuple[str, ...] = (
    "time_entries",
    "personnel_payments",
    "personnel_certifications",
    "personnel_languages",
    "personnel_capabilities",
    "emergency_contacts",
    "personnel_project_assignments",
    "project_labor_expenses",
)


def _amount() -> sa.Numeric[object]:
    return sa.Numeric(12, 2)


def _payload_columns(table: str) -> list[sa.Column[object]]:
    match table:
        case "projects":
            return [sa.Column("name", sa.String(), nullable=False)]
        case "estimates" | "invoices":
            return [
                sa.Column("customer_name", sa.String(), nullable=True),
                sa.Column("total", _amount(), nullable=True),
            ]
        case "job_orders":
            return [sa.Column("customer_name", sa.String(), nullable=True)]
        case "change_orders":
            return [
                sa.Column("customer_name", sa.String(), nullable=True),
                sa.Column("vendor_name", sa.String(), nullable=True),
                sa.Column("amount", _amount(), nullable=True),
            ]
        case "activities":
            return [sa.Column("description", sa.Text(), nullable=True)]
        case "appointments":
            return [sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=True)]
        case "insurance_claims":
            return [sa.Column("claim_number", sa.String(), nullable=True)]
        case "purchase_orders" | "vendor_bills":
            return [
                sa.Column("vendor_name", sa.String(), nullable=True),
                sa.Column("total", _amount(), nullable=True),
            ]
        case "time_entries":
            return [sa.Column("hours", sa.Numeric(6, 2), nullable=True)]
        case "personnel_payments":
            return [sa.Column("gross_amount", _amount(), nullable=True)]
        case _:
            return []


def _record_columns() -> list[sa.Column[object]]:
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("merged_into_id", sa.Uuid(), nullable=True),
        sa.Column("merged_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("merged_by", sa.String(), nullable=True),
        sa.Column("merge_reason", sa.Text(), nullable=True),
    ]


def _record_constraints(table: str) -> list[sa.Constraint]:
    return [
        sa.ForeignKeyConstraint(
            ["merged_into_id"],
            [f"{table}.id"],
            name=op.f(f"fk_{table}_{table}_merged_into_id_{table}"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f(f"pk_{table}")),
    ]


def _reference(table: str, column: str, referred: str) -> sa.ForeignKeyConstraint:
    return sa.ForeignKeyConstraint(
        [column], [f"{referred}.id"], name=op.f(f"fk_{table}_{table}_{column}_{referred}")
    )


def _create_dependent(table: str, references: Sequence[tuple[str, str]]) -> None:
    op.create_table(
        table,
        sa.Column("id", sa.Uuid(), nullable=False),
        *(sa.Column(column, sa.Uuid(), nullable=True) for column, _ in references),
        *_payload_columns(table),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        *(_reference(table, column, referred) for column, referred in references),
        sa.PrimaryKeyConstraint("id", name=op.f(f"pk_{table}")),
    )
    for column, _ in references:
        op.create_index(op.f(f"ix_{table}_{column}"), table, [column], unique=False)


def upgrade() -> None:
    op.create_table(
        "customers",
        *_record_columns(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("company", sa.String(), nullable=True),
        sa.Column("address", sa.String(), nullable=True),
        sa.Column("jobsite_address", sa.String(), nullable=True),
        sa.Column("tax_exempt", sa.Boolean(), nullable=False),
        sa.Column("customer_type", sa.String(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_record_constraints("customers"),
    )
    op.create_table(
        "vendors",
        *_record_columns(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("company", sa.String(), nullable=True),
        sa.Column("address", sa.String(), nullable=True),
        sa.Column("city", sa.String(), nullable=True),
        sa.Column("state", sa.String(), nullable=True),
        sa.Column("zip", sa.String(), nullable=True),
        sa.Column("vendor_type", sa.String(), nullable=True),
        sa.Column("tax_id", sa.String(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_record_constraints("vendors"),
    )
    op.create_table(
        "personnel",
        *_record_columns(),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("address", sa.String(), nullable=True),
        sa.Column("city", sa.String(), nullable=True),
        sa.Column("state", sa.String(), nullable=True),
        sa.Column("zip", sa.String(), nullable=True),
        sa.Column("ssn_last_four", sa.String(length=4), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("citizenship_status", sa.String(), nullable=True),
        sa.Column("immigration_status", sa.String(), nullable=True),
        sa.Column("personnel_number", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("linked_vendor_id", sa.Uuid(), nullable=True),
        _reference("personnel", "linked_vendor_id", "vendors"),
        *_record_constraints("personnel"),
    )
    op.create_index(
        op.f("ix_personnel_linked_vendor_id"), "personnel", ["linked_vendor_id"], unique=False
    )

    for table in CUSTOMER_DEPENDENTS:
        _create_dependent(table, [("customer_id", "customers")])
    _create_dependent("change_orders", [("customer_id", "customers"), ("vendor_id", "vendors")])
    for table in VENDOR_DEPENDENTS:
        _create_dependent(table, [("vendor_id", "vendors")])
    for table in PERSONNEL_DEPENDENTS:
        _create_dependent(table, [("personnel_id", "personnel")])

    op.create_table(
        "user_roles",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column(
            "role",
            sa.Enum("ADMIN", "MANAGER", "USER", name="role", native_enum=False),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_user_roles")),
        sa.UniqueConstraint("user_id", "role", name=op.f("uq_user_roles_user_roles_user_id")),
    )
    op.create_index(op.f("ix_user_roles_user_id"), "user_roles", ["user_id"], unique=False)

    op.create_table(
        "entity_merge_audit",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "entity_type",
            sa.Enum("CUSTOMER", "VENDOR", "PERSONNEL", name="entitytype", native_enum=False),
            nullable=False,
        ),
        sa.Column("source_entity_id", sa.Uuid(), nullable=False),
        sa.Column("target_entity_id", sa.Uuid(), nullable=False),
        sa.Column("source_entity_snapshot", sa.JSON(), nullable=False),
        sa.Column("target_entity_snapshot", sa.JSON(), nullable=False),
        sa.Column("merged_entity_snapshot", sa.JSON(), nullable=False),
        sa.Column("field_overrides", sa.JSON(), nullable=False),
        sa.Column("related_records_updated", sa.JSON(), nullable=False),
        sa.Column("quickbooks_resolution", sa.JSON(), nullable=True),
        sa.Column("merged_by", sa.String(), nullable=False),
        sa.Column("merged_by_email", sa.String(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_reversed", sa.Boolean(), nullable=False),
        sa.Column("merged_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_entity_merge_audit")),
    )
    op.create_index(
        "ix_entity_merge_audit_source",
        "entity_merge_audit",
        ["entity_type", "source_entity_id"],
        unique=False,
    )
    op.create_index(
        "ix_entity_merge_audit_target",
        "entity_merge_audit",
        ["entity_type", "target_entity_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_table("entity_merge_audit")
    op.drop_table("user_roles")
    for table in (
        *PERSONNEL_DEPENDENTS,
        *VENDOR_DEPENDENTS,
        "change_orders",
        *CUSTOMER_DEPENDENTS,
    ):
        op.drop_table(table)
    op.drop_table("personnel")
    op.drop_table("vendors")
    op.drop_table("customers")
