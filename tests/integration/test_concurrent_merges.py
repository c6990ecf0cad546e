from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from crewbase.domain.merge import InvalidState, MergeRequest, merge_entities
from crewbase.domain.model import EntityType
from tests.helpers.records import count_audits, count_rows, fetch_row, insert_customer, insert_row

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from sqlalchemy.engine import Engine

    from crewbase.adapters.sqlalchemy.unit_of_work import SqlAlchemyMergeUnitOfWork
    from crewbase.domain.merge import MergeLocks, MergeResult
    from crewbase.domain.model import Actor

    type UowFactory = Callable[[], SqlAlchemyMergeUnitOfWork]


def _run_together(
    pairs: list[tuple[UUID, UUID]],
    *,
    actor: Actor,
    unit_of_work_factory: UowFactory,
    locks: MergeLocks,
) -> list[MergeResult | Exception]:
    barrier = threading.Barrier(len(pairs))

    def merge(pair: tuple[UUID, UUID]) -> MergeResult | Exception:
        source, target = pair
        barrier.wait(timeout=5)
        try:
            return merge_entities(
                MergeRequest(entity_type=EntityType.CUSTOMER, source_id=source, target_id=target),
                actor=actor,
                unit_of_work_factory=unit_of_work_factory,
                locks=locks,
            )
        except InvalidState as exc:
            return exc

    with ThreadPoolExecutor(max_workers=len(pairs)) as pool:
        return list(pool.map(merge, pairs))


def test_same_pair_merged_twice_at_once_succeeds_exactly_once(
    sqlite_engine: Engine,
    sqlite_unit_of_work: UowFactory,
    admin: Actor,
    merge_locks: MergeLocks,
) -> None:
    source = insert_customer(sqlite_engine, name="Acme Inc")
    target = insert_customer(sqlite_engine, name="Acme")
    project = insert_row(sqlite_engine, "projects", customer_id=source, name="Roof")

    outcomes = _run_together(
        [(source, target), (source, target)],
        actor=admin,
        unit_of_work_factory=sqlite_unit_of_work,
        locks=merge_locks,
    )

    failures = [outcome for outcome in outcomes if isinstance(outcome, InvalidState)]
    assert len(failures) == 1
    assert "already merged" in str(failures[0])
    assert count_audits(sqlite_engine) == 1
    assert fetch_row(sqlite_engine, "projects", project)["customer_id"] == target
    assert merge_locks.active_keys() == frozenset()


def test_chained_merges_never_leave_dependents_on_retired_records(
    sqlite_engine: Engine,
    sqlite_unit_of_work: UowFactory,
    admin: Actor,
    merge_locks: MergeLocks,
) -> None:
    first = insert_customer(sqlite_engine, name="A")
    middle = insert_customer(sqlite_engine, name="B")
    last = insert_customer(sqlite_engine, name="C")
    for customer in (first, middle, last):
        insert_row(sqlite_engine, "projects", customer_id=customer, name="Job")

    outcomes = _run_together(
        [(first, middle), (middle, last)],
        actor=admin,
        unit_of_work_factory=sqlite_unit_of_work,
        locks=merge_locks,
    )

    succeeded = [outcome for outcome in outcomes if not isinstance(outcome, Exception)]
    assert succeeded
    assert count_audits(sqlite_engine) == len(succeeded)
    customers = (first, middle, last)
    retired = {
        customer
        for customer in customers
        if fetch_row(sqlite_engine, "customers", customer)["merged_into_id"] is not None
    }
    assert len(retired) == len(succeeded)
    for customer in retired:
        assert count_rows(sqlite_engine, "projects", "customer_id", customer) == 0
    live_jobs = sum(
        count_rows(sqlite_engine, "projects", "customer_id", customer)
        for customer in customers
        if customer not in retired
    )
    assert live_jobs == 3
