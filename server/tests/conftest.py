"""Test configuration and fixtures."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import Database, get_db
from app.core.security import create_session_token
from app.models import *  # noqa: F403 - Import all models
from app.models import Booking, Tour

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def test_database():
    """Create a test database with all tables."""
    database = Database(TEST_DATABASE_URL)
    await database.create_all()

    yield database

    await database.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_database) -> AsyncSession:
    """Create a test database session."""
    async with test_database.session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def test_app(test_database, test_session):
    """Create a test FastAPI application bound to the test database."""
    from app.main import create_app

    app = create_app(database=test_database)

    # Share the test session with request handlers
    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create an unauthenticated HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def admin_token():
    """A valid admin session token."""
    return create_session_token(settings.admin_username)


@pytest_asyncio.fixture(scope="function")
async def admin_client(test_app, admin_token):
    """Create an HTTP client carrying an admin session."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"Authorization": f"Bearer {admin_token}"},
    ) as client:
        yield client


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    """Redirect image uploads to a temporary directory."""
    target = tmp_path / "uploads"
    monkeypatch.setattr(settings, "upload_dir", str(target))
    return target


@pytest.fixture
def sample_tour_data():
    """Sample tour payload for testing."""
    return {
        "name": "Passeio pelo Vale do Douro",
        "description": "Full-day tour through the Douro valley vineyards with tasting and river cruise",
        "price": 120,
        "duration": 8,
        "category": "Wine",
    }


@pytest_asyncio.fixture
async def make_tour(test_session):
    """Factory inserting tours straight into the database."""

    async def _make_tour(name: str, **overrides) -> Tour:
        from app.services.slug import generate_slug

        values = {
            "name": name,
            "slug": generate_slug(name),
            "description": f"{name} description",
            "short_description": f"{name} teaser",
            "price": 100.0,
            "duration": 4.0,
            "category": "Tour",
        }
        values.update(overrides)
        tour = Tour(**values)
        test_session.add(tour)
        await test_session.commit()
        await test_session.refresh(tour)
        return tour

    return _make_tour


@pytest_asyncio.fixture
async def make_booking(test_session):
    """Factory attaching a booking to a tour."""

    async def _make_booking(tour: Tour) -> Booking:
        booking = Booking(
            tour_id=tour.id,
            customer_name="Maria Silva",
            customer_email="maria@example.com",
        )
        test_session.add(booking)
        await test_session.commit()
        return booking

    return _make_booking
