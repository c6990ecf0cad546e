from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from crewbase.adapters.sqlalchemy import start_mappers
from crewbase.adapters.sqlalchemy.migrations import upgrade_head
from crewbase.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyMergeUnitOfWork,
    enable_sqlite_savepoints,
    shutdown,
    startup,
)
from crewbase.domain.merge import MergeLocks
from crewbase.domain.model import Actor
from tests.helpers.records import ADMIN_ID, grant_admin

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "CREWBASE_STRICT_AUDIT",
        "QUICKBOOKS_SYNC_URL",
        "QUICKBOOKS_SYNC_TOKEN",
        "QUICKBOOKS_SYNC_TIMEOUT_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    # one shared connection so API worker threads see the same in-memory database
    engine = create_engine(
        "sqlite+pysqlite://",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_savepoints(engine)
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyMergeUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyMergeUnitOfWork:
        return SqlAlchemyMergeUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def admin(sqlite_engine: Engine) -> Actor:
    grant_admin(sqlite_engine, ADMIN_ID)
    return Actor(user_id=ADMIN_ID, email="admin@example.com")


@pytest.fixture
def merge_locks() -> MergeLocks:
    return MergeLocks()
