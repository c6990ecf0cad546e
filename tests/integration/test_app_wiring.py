from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from crewbase.app import run_merge
from crewbase.config import MissingConfigurationError
from crewbase.domain.merge import MergeRequest
from crewbase.domain.model import EntityType
from tests.helpers.records import fetch_row, insert_customer, insert_personnel, insert_vendor

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.engine import Engine

    from crewbase.adapters.sqlalchemy.unit_of_work import SqlAlchemyMergeUnitOfWork
    from crewbase.domain.model import Actor

    type UowFactory = Callable[[], SqlAlchemyMergeUnitOfWork]


@pytest.fixture
def half_configured_sync(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("QUICKBOOKS_SYNC_URL", "https://sync.example.com/quickbooks-sync-vendor")


@pytest.mark.usefixtures("half_configured_sync")
def test_customer_merge_ignores_vendor_sync_configuration(
    sqlite_engine: Engine, sqlite_unit_of_work: UowFactory, admin: Actor
) -> None:
    source = insert_customer(sqlite_engine, name="A")
    target = insert_customer(sqlite_engine, name="B")

    result = run_merge(
        MergeRequest(entity_type=EntityType.CUSTOMER, source_id=source, target_id=target),
        actor=admin,
        unit_of_work_factory=sqlite_unit_of_work,
    )

    assert result.audit_id is not None
    assert fetch_row(sqlite_engine, "customers", source)["merged_into_id"] == target


@pytest.mark.usefixtures("half_configured_sync")
def test_personnel_merge_ignores_vendor_sync_configuration(
    sqlite_engine: Engine, sqlite_unit_of_work: UowFactory, admin: Actor
) -> None:
    source = insert_personnel(sqlite_engine, first_name="Jon")
    target = insert_personnel(sqlite_engine, first_name="John")

    result = run_merge(
        MergeRequest(entity_type=EntityType.PERSONNEL, source_id=source, target_id=target),
        actor=admin,
        unit_of_work_factory=sqlite_unit_of_work,
    )

    assert result.audit_id is not None


@pytest.mark.usefixtures("half_configured_sync")
def test_vendor_merge_still_reads_sync_configuration(
    sqlite_engine: Engine, sqlite_unit_of_work: UowFactory, admin: Actor
) -> None:
    source = insert_vendor(sqlite_engine, name="A")
    target = insert_vendor(sqlite_engine, name="B")

    with pytest.raises(MissingConfigurationError):
        run_merge(
            MergeRequest(entity_type=EntityType.VENDOR, source_id=source, target_id=target),
            actor=admin,
            unit_of_work_factory=sqlite_unit_of_work,
        )

    assert fetch_row(sqlite_engine, "vendors", source)["merged_into_id"] is None
