"""Service test fixtures — file-backed SQLite directory, wired engine, FastAPI test client.

Invariants:
    - Every test gets a fresh SQLite file under tmp_path (concurrent tests need real
      separate connections, which :memory: cannot give)
    - Settings use millisecond backoff and generous retry budgets so contention
      tests finish fast
    - get_directory and get_settings are overridden for route tests

Design Decisions:
    - busy timeout via connect_args: concurrent writers wait for the lock instead of
      failing with "database is locked"
    - register() helper goes through the real orchestrator with explicit codes, so
      trees built for a test carry settled counters
"""

import pytest
from httpx import ASGITransport, AsyncClient

import binary_network.infrastructure.database as db_module
from binary_network.api.dependencies import get_directory
from binary_network.config import Settings, get_settings
from binary_network.core.domain_types import Side
from binary_network.db.session import create_schema
from binary_network.infrastructure.database import DatabaseSessionManager
from binary_network.infrastructure.member_directory import SqlReferralDirectory
from binary_network.main import app
from binary_network.services.commission_propagator import CommissionPropagator
from binary_network.services.network_aggregator import NetworkAggregator
from binary_network.services.network_reports import NetworkReports
from binary_network.services.placement_resolver import PlacementResolver
from binary_network.services.registration import (
    RegistrationOrchestrator, RegistrationRequest,
)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'network.db'}",
        conflict_max_retries=50,
        conflict_base_delay_ms=1,
        conflict_max_delay_ms=20,
        placement_max_attempts=50,
        log_format="text",
    )


@pytest.fixture
async def db_manager(settings):
    manager = DatabaseSessionManager(
        settings.database_url,
        pool_size=5,
        max_overflow=20,
        connect_args={"timeout": 30},
    )
    await create_schema(manager.engine)
    yield manager
    await manager.dispose()


@pytest.fixture
def directory(db_manager):
    return SqlReferralDirectory(db_manager)


@pytest.fixture
def aggregator(directory, settings):
    return NetworkAggregator(directory, settings.max_tree_depth)


@pytest.fixture
def resolver(directory, settings):
    return PlacementResolver(directory, settings)


@pytest.fixture
def propagator(directory, aggregator, settings):
    return CommissionPropagator(directory, aggregator, settings)


@pytest.fixture
def orchestrator(directory, resolver, propagator, settings):
    return RegistrationOrchestrator(directory, resolver, propagator, settings)


@pytest.fixture
def reports(directory, aggregator, propagator, settings):
    return NetworkReports(directory, aggregator, propagator, settings.max_tree_depth)


@pytest.fixture
def register(orchestrator):
    """Register a member under an explicit code; manual slot when upline+side given."""

    async def _register(
        code: str,
        referrer: str | None = None,
        upline: str | None = None,
        side: Side | None = None,
    ):
        return await orchestrator.register(RegistrationRequest(
            name=f"Member {code}",
            referral_code=code,
            referrer_code=referrer,
            upline_code=upline,
            side=side,
        ))

    return _register


@pytest.fixture
async def client(directory, settings, db_manager):
    """FastAPI test client with directory and settings overridden."""
    app.dependency_overrides[get_directory] = lambda: directory
    app.dependency_overrides[get_settings] = lambda: settings

    original_manager = db_module.db_manager
    db_module.db_manager = db_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
