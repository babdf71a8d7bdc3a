"""Root conftest for all tests.

Every test gets its own in-memory SQLite database. The engine uses a
StaticPool so the worker threads started by run_in_session all see the same
connection.
"""

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from content_engine.content.collections import SqlDocumentStore
from content_engine.content.resources import ResourceRegistry
from content_engine.db.models import Base
from content_engine.events.invalidation import ContentEventBus, InvalidationSignal
from content_engine.plans.executor import ActionExecutor
from content_engine.plans.ledger import ChangeLedger
from content_engine.plans.plan_store import PlanStore
from content_engine.plans.revert_engine import RevertEngine
from content_engine.service import ContentActionService


@pytest.fixture(scope="function")
def db_engine(monkeypatch):
    """Isolated in-memory database wired into content_engine.db.session."""
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)

    import content_engine.db.session as session_module

    monkeypatch.setattr(session_module, "_engine", engine)
    monkeypatch.setattr(
        session_module,
        "_SessionLocal",
        sessionmaker(bind=engine, autocommit=False, autoflush=False),
    )

    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def store(db_engine) -> SqlDocumentStore:
    return SqlDocumentStore()


@pytest.fixture
def registry(store) -> ResourceRegistry:
    return ResourceRegistry(store)


@pytest.fixture
def signals() -> list[InvalidationSignal]:
    return []


@pytest.fixture
def bus(signals) -> ContentEventBus:
    """Event bus that records every published signal in ``signals``."""
    event_bus = ContentEventBus()
    event_bus.subscribe(signals.append)
    return event_bus


@pytest.fixture
def plan_store(db_engine) -> PlanStore:
    return PlanStore()


@pytest.fixture
def ledger(db_engine) -> ChangeLedger:
    return ChangeLedger()


@pytest.fixture
def executor(registry, plan_store, ledger, bus) -> ActionExecutor:
    return ActionExecutor(registry=registry, plans=plan_store, ledger=ledger, bus=bus)


@pytest.fixture
def revert_engine(registry, plan_store, ledger, bus) -> RevertEngine:
    return RevertEngine(registry=registry, plans=plan_store, ledger=ledger, bus=bus)


@pytest.fixture
def service(db_engine, bus) -> ContentActionService:
    return ContentActionService(bus=bus)
