"""Pytest fixtures and configuration for the test suite."""

import pytest
from pydantic import HttpUrl

from fsnetwork.api.auth import BackendAuth, InMemoryStore
from fsnetwork.api.backend import BackendService
from fsnetwork.api.transport import NetworkService
from fsnetwork.config import BackendConfig


@pytest.fixture
def config() -> BackendConfig:
    """Provide a BackendConfig instance for testing.

    Returns:
        BackendConfig: A BackendConfig instance with test values.
    """
    return BackendConfig(base_url=HttpUrl("https://api.example.com/v1/"))


@pytest.fixture
def store() -> InMemoryStore:
    """Provide an empty in-memory key-value store."""
    return InMemoryStore()


@pytest.fixture
def auth(store: InMemoryStore) -> BackendAuth:
    """Provide a BackendAuth backed by the in-memory store."""
    return BackendAuth(store)


@pytest.fixture
def transport(config: BackendConfig) -> NetworkService:
    """Provide a NetworkService for testing."""
    return NetworkService(config)


@pytest.fixture
def service(config: BackendConfig, auth: BackendAuth, transport: NetworkService) -> BackendService:
    """Provide a BackendService wired to the test transport.

    Args:
        config: A BackendConfig fixture.
        auth: A BackendAuth fixture.
        transport: A NetworkService fixture.

    Returns:
        BackendService: A BackendService instance.
    """
    return BackendService(config, auth, transport=transport)
