import os
import uuid
from decimal import Decimal

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from app.main import app
from app.config import settings
from app.database import Base, get_db
from app.api.deps import (
    create_access_token,
    get_closure_motive_catalog,
    get_evidence_store,
    get_location_session_factory,
    get_session_manager,
)
from app.models import OrderStatus, WorkOrder
from app.services.closure_motive_catalog import ClosureMotiveCatalog
from app.services.evidence_store import SQLAlchemyEvidenceStore
from app.services.order_execution.sessions import ExecutionSessionManager
from app.services.order_store import SQLAlchemyOrderStore

# Test database URL (SQLite for testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"

STATUS_ASSIGNED = "ASSIGNED"
TEST_AGENT_ID = "agent-001"


@pytest_asyncio.fixture
async def session_factory():
    """Create test database and tables, yield a session factory bound to it."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=NullPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    yield factory

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def test_db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def statuses(test_db: AsyncSession) -> dict[str, str]:
    """Order status catalog, name -> id."""
    names = [
        STATUS_ASSIGNED,
        settings.STATUS_IN_EXECUTION,
        settings.STATUS_SECOND_VISIT_PENDING,
        settings.STATUS_CLOSED_BY_AGENT,
    ]
    rows = [OrderStatus(id=str(uuid.uuid4()), name=name) for name in names]
    test_db.add_all(rows)
    await test_db.commit()
    return {row.name: row.id for row in rows}


@pytest_asyncio.fixture
async def work_order(test_db: AsyncSession, statuses) -> WorkOrder:
    """An assigned, not yet started work order."""
    order = WorkOrder(
        status_id=statuses[STATUS_ASSIGNED],
        client_name="Maria Lopez",
        client_address="Av. Central 123",
        contract_account="1002003004",
        current_meter_serial="MTR-0001-AB",
        previous_reading=Decimal("1200"),
    )
    test_db.add(order)
    await test_db.commit()
    await test_db.refresh(order)
    return order


@pytest.fixture
def order_store(session_factory) -> SQLAlchemyOrderStore:
    return SQLAlchemyOrderStore(session_factory)


@pytest.fixture
def evidence_store(session_factory) -> SQLAlchemyEvidenceStore:
    return SQLAlchemyEvidenceStore(session_factory)


@pytest_asyncio.fixture
async def session_manager(order_store):
    """Fresh session registry; the debounce delay is long so only explicit flushes write."""
    manager = ExecutionSessionManager(order_store, flush_delay=60)
    yield manager
    await manager.close_all()


@pytest_asyncio.fixture
async def client(test_db: AsyncSession, session_factory, session_manager, evidence_store):
    """Create test client with overridden collaborators."""

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_manager] = lambda: session_manager
    app.dependency_overrides[get_evidence_store] = lambda: evidence_store
    app.dependency_overrides[get_closure_motive_catalog] = lambda: ClosureMotiveCatalog(session_factory)
    app.dependency_overrides[get_location_session_factory] = lambda: session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_token() -> str:
    return create_access_token({"sub": TEST_AGENT_ID, "email": "agent@example.com"})


@pytest_asyncio.fixture
async def authenticated_client(client: AsyncClient, auth_token: str):
    """Create authenticated test client."""
    client.headers["Authorization"] = f"Bearer {auth_token}"
    return client
