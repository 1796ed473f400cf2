"""
Pytest configuration and fixtures.
"""
import os

os.environ.setdefault("ENVIRONMENT", "testing")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from typing import AsyncGenerator

from dbcontroller.main import app
from dbcontroller.plugins import PluginRegistry
from dbcontroller.services.database_reconciler import DatabaseReconciler
from tests.fakes import FakePlugin, InMemoryObjectStore, RecordingEventRecorder


@pytest_asyncio.fixture
async def test_client() -> AsyncGenerator[AsyncClient, None]:
    """Create test client (the lifespan is not run, so no cluster is needed)."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def recorder() -> RecordingEventRecorder:
    return RecordingEventRecorder()


@pytest.fixture
def plugin() -> FakePlugin:
    return FakePlugin()


@pytest.fixture
def registry(plugin: FakePlugin) -> PluginRegistry:
    """Registry serving the fake plugin for serverType 'fake' and for postgres servers."""
    registry = PluginRegistry()
    registry.register("fake", lambda: plugin)
    registry.register("postgres", lambda: plugin)
    return registry


@pytest.fixture
def reconciler(store, registry, recorder) -> DatabaseReconciler:
    return DatabaseReconciler(store=store, registry=registry, recorder=recorder)
