"""SQLAlchemy table metadata for mergeable records, their dependents and the audit log."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, Final

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    func,
    orm,
)
from sqlalchemy.orm import configure_mappers

from crewbase.domain.model import EntityType, MergeAudit, Role

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]
AMOUNT_TYPE: Final = Numeric(12, 2)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def _record_columns(table_name: str) -> list[Column[object]]:
    """Identity, timestamps and merge lineage shared by every mergeable table."""

    return [
        Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
        Column("created_at", UTCDateTime(), nullable=False, server_default=func.now()),
        Column("updated_at", UTCDateTime(), nullable=True),
        Column(
            "merged_into_id",
            UUIDColumnType,
            ForeignKey(f"{table_name}.id"),
            nullable=True,
        ),
        Column("merged_at", UTCDateTime(), nullable=True),
        Column("merged_by", String, nullable=True),
        Column("merge_reason", Text, nullable=True),
    ]


def _dependent_table(name: str, *columns: Column[object]) -> Table:
    return Table(
        name,
        mapper_registry.metadata,
        Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
        *columns,
        Column("created_at", UTCDateTime(), nullable=False, server_default=func.now()),
    )


def _reference(column_name: str, table_name: str) -> Column[object]:
    return Column(column_name, UUIDColumnType, ForeignKey(f"{table_name}.id"), index=True)


# Mergeable records -----------------------------------------------------------

customer_table = Table(
    "customers",
    mapper_registry.metadata,
    *_record_columns("customers"),
    Column("name", String, nullable=False),
    Column("email", String, nullable=True),
    Column("phone", String, nullable=True),
    Column("company", String, nullable=True),
    Column("address", String, nullable=True),
    Column("jobsite_address", String, nullable=True),
    Column("tax_exempt", Boolean, nullable=False, default=False),
    Column("customer_type", String, nullable=True),
    Column("notes", Text, nullable=True),
)

vendor_table = Table(
    "vendors",
    mapper_registry.metadata,
    *_record_columns("vendors"),
    Column("name", String, nullable=False),
    Column("email", String, nullable=True),
    Column("phone", String, nullable=True),
    Column("company", String, nullable=True),
    Column("address", String, nullable=True),
    Column("city", String, nullable=True),
    Column("state", String, nullable=True),
    Column("zip", String, nullable=True),
    Column("vendor_type", String, nullable=True),
    Column("tax_id", String, nullable=True),
    Column("notes", Text, nullable=True),
    Column("is_active", Boolean, nullable=False, default=True),
)

personnel_table = Table(
    "personnel",
    mapper_registry.metadata,
    *_record_columns("personnel"),
    Column("first_name", String, nullable=False),
    Column("last_name", String, nullable=False),
    Column("email", String, nullable=True),
    Column("phone", String, nullable=True),
    Column("address", String, nullable=True),
    Column("city", String, nullable=True),
    Column("state", String, nullable=True),
    Column("zip", String, nullable=True),
    Column("ssn_last_four", String(4), nullable=True),
    Column("date_of_birth", Date, nullable=True),
    Column("citizenship_status", String, nullable=True),
    Column("immigration_status", String, nullable=True),
    Column("personnel_number", String, nullable=True),
    Column("status", String, nullable=False, default="active"),
    _reference("linked_vendor_id", "vendors"),
)

# Customer dependents ---------------------------------------------------------

project_table = _dependent_table(
    "projects",
    _reference("customer_id", "customers"),
    Column("name", String, nullable=False),
)

estimate_table = _dependent_table(
    "estimates",
    _reference("customer_id", "customers"),
    Column("customer_name", String, nullable=True),
    Column("total", AMOUNT_TYPE, nullable=True),
)

invoice_table = _dependent_table(
    "invoices",
    _reference("customer_id", "customers"),
    Column("customer_name", String, nullable=True),
    Column("total", AMOUNT_TYPE, nullable=True),
)

job_order_table = _dependent_table(
    "job_orders",
    _reference("customer_id", "customers"),
    Column("customer_name", String, nullable=True),
)

change_order_table = _dependent_table(
    "change_orders",
    _reference("customer_id", "customers"),
    Column("customer_name", String, nullable=True),
    _reference("vendor_id", "vendors"),
    Column("vendor_name", String, nullable=True),
    Column("amount", AMOUNT_TYPE, nullable=True),
)

activity_table = _dependent_table(
    "activities",
    _reference("customer_id", "customers"),
    Column("description", Text, nullable=True),
)

appointment_table = _dependent_table(
    "appointments",
    _reference("customer_id", "customers"),
    Column("scheduled_at", UTCDateTime(), nullable=True),
)

insurance_claim_table = _dependent_table(
    "insurance_claims",
    _reference("customer_id", "customers"),
    Column("claim_number", String, nullable=True),
)

# Vendor dependents -----------------------------------------------------------

purchase_order_table = _dependent_table(
    "purchase_orders",
    _reference("vendor_id", "vendors"),
    Column("vendor_name", String, nullable=True),
    Column("total", AMOUNT_TYPE, nullable=True),
)

vendor_bill_table = _dependent_table(
    "vendor_bills",
    _reference("vendor_id", "vendors"),
    Column("vendor_name", String, nullable=True),
    Column("total", AMOUNT_TYPE, nullable=True),
)

# Personnel dependents --------------------------------------------------------

time_entry_table = _dependent_table(
    "time_entries",
    _reference("personnel_id", "personnel"),
    Column("hours", Numeric(6, 2), nullable=True),
)

personnel_payment_table = _dependent_table(
    "personnel_payments",
    _reference("personnel_id", "personnel"),
    Column("gross_amount", AMOUNT_TYPE, nullable=True),
)

PERSONNEL_CHILD_TABLES: Final[tuple[str, ...]] = (
    "personnel_certifications",
    "personnel_languages",
    "personnel_capabilities",
    "emergency_contacts",
    "personnel_project_assignments",
    "project_labor_expenses",
)

personnel_child_tables: Final[dict[str, Table]] = {
    name: _dependent_table(name, _reference("personnel_id", "personnel"))
    for name in PERSONNEL_CHILD_TABLES
}

# Authorization and audit -----------------------------------------------------

user_role_table = Table(
    "user_roles",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("user_id", String, nullable=False, index=True),
    Column("role", Enum(Role, native_enum=False), nullable=False),
    UniqueConstraint("user_id", "role"),
)

merge_audit_table = Table(
    "entity_merge_audit",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("entity_type", Enum(EntityType, native_enum=False), nullable=False),
    Column("source_entity_id", UUIDColumnType, nullable=False),
    Column("target_entity_id", UUIDColumnType, nullable=False),
    Column("source_entity_snapshot", JSON, nullable=False),
    Column("target_entity_snapshot", JSON, nullable=False),
    Column("merged_entity_snapshot", JSON, nullable=False),
    Column("field_overrides", JSON, nullable=False),
    Column("related_records_updated", JSON, nullable=False),
    Column("quickbooks_resolution", JSON, nullable=True),
    Column("merged_by", String, nullable=False),
    Column("merged_by_email", String, nullable=True),
    Column("notes", Text, nullable=True),
    Column("is_reversed", Boolean, nullable=False, default=False),
    Column("merged_at", UTCDateTime(), nullable=False),
    Index("ix_entity_merge_audit_source", "entity_type", "source_entity_id"),
    Index("ix_entity_merge_audit_target", "entity_type", "target_entity_id"),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(MergeAudit, merge_audit_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
