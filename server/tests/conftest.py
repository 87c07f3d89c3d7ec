"""Test configuration and fixtures."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from factories import RecordingTransport, seed_marketplace
from tripbroker.bootstrap import build_container
from tripbroker.core.config import Settings
from tripbroker.core.database import build_engine, build_session_factory, init_db
from tripbroker.events import EventBus

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def test_settings(tmp_path):
    """Settings for an isolated file-backed database with workers off."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'tripbroker.db'}",
        environment="development",
        workers_enabled=False,
        manager_channel_address=None,
    )


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create an in-memory test database engine with all tables."""
    engine = build_engine(TEST_DATABASE_URL)
    await init_db(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return build_session_factory(test_engine)


@pytest_asyncio.fixture(scope="function")
async def test_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def marketplace(test_session):
    """A travel request owned by the traveler with two open offers."""
    return await seed_marketplace(test_session)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def container(session_factory, transport):
    """Application components over the in-memory database."""
    settings = Settings(database_url=TEST_DATABASE_URL, workers_enabled=False, manager_channel_address=None)
    return build_container(settings, session_factory, transport)


@pytest_asyncio.fixture(scope="function")
async def test_app(test_settings, transport):
    """Create the application and run its lifespan around the test."""
    from tripbroker.main import create_app

    app = create_app(config=test_settings, transport=transport)

    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def app_marketplace(test_app):
    """Marketplace data persisted in the application's database."""
    async with test_app.state.container.session_factory() as session:
        return await seed_marketplace(session)
