from __future__ import annotations

import itertools
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from catalogsync.adapters.sqlalchemy import create_all_tables, start_mappers
from catalogsync.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, shutdown, startup
from catalogsync.domain.ingest import BuildOptions

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

DATA_DIR = Path(__file__).resolve().parent / "data"
FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


@pytest.fixture(scope="session")
def shop_feed_path() -> Path:
    return DATA_DIR / "shop_feed.xml"


@pytest.fixture(scope="session")
def shop_feed(shop_feed_path: Path) -> str:
    return shop_feed_path.read_text(encoding="utf-8")


@pytest.fixture
def build_options() -> BuildOptions:
    """Options with a counting id factory and a frozen clock, so builds are reproducible."""

    counter = itertools.count(1)
    return BuildOptions(
        id_factory=lambda: f"generated-{next(counter)}",
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    start_mappers()
    create_all_tables(engine)
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
) -> Iterator[Callable[[], SqlAlchemyUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()
