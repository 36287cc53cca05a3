"""Service test fixtures — services bound to the test DB, fixed clock, and the API client.

Invariants:
    - All services of one test share the test_db session (one unit of work at a time)
    - Seed helpers commit through the services, never by raw inserts
    - client overrides get_db and get_clock; db_manager points at the test engine
      so the readiness check sees the same database
"""

import pytest
from httpx import ASGITransport, AsyncClient

import bibli.infrastructure.database as db_module
from bibli.api.dependencies import get_clock
from bibli.infrastructure.database import DatabaseSessionManager, get_db
from bibli.main import app
from bibli.core.domain_types import VolumeCondition
from bibli.services.allocation_engine import AllocationEngine
from bibli.services.borrower_registry import BorrowerRegistry
from bibli.services.catalog_store import CatalogStore
from bibli.services.duplicate_resolver import DuplicateResolver
from bibli.services.loan_ledger import LoanLedger
from bibli.services.location_tree import LocationTree


@pytest.fixture
def catalog(test_db, clock):
    return CatalogStore(test_db, clock)


@pytest.fixture
def locations(test_db):
    return LocationTree(test_db)


@pytest.fixture
def borrowers(test_db):
    return BorrowerRegistry(test_db)


@pytest.fixture
def allocation(test_db):
    return AllocationEngine(test_db)


@pytest.fixture
def ledger(test_db, clock):
    return LoanLedger(test_db, clock)


@pytest.fixture
def resolver(test_db, clock):
    return DuplicateResolver(test_db, clock)


@pytest.fixture
async def title(catalog):
    """A title with no ISBN and no volumes."""
    created, _ = await catalog.create_title({"title": "The Hobbit"})
    return created


@pytest.fixture
async def shelved_title(catalog, title):
    """The Hobbit with copies Good, Excellent, Fair (copies 1, 2, 3)."""
    for condition in (
        VolumeCondition.GOOD, VolumeCondition.EXCELLENT, VolumeCondition.FAIR,
    ):
        await catalog.add_volume(title.id, condition)
    return title


@pytest.fixture
async def student_group(borrowers):
    return await borrowers.create_group("Student", 14)


@pytest.fixture
async def student(borrowers, student_group):
    return await borrowers.create({
        "name": "Ada Student", "email": "ada@example.org",
        "group_id": student_group.id,
    })


@pytest.fixture
async def client(test_engine, test_session_factory, clock):
    """FastAPI test client with DB and clock dependencies overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
