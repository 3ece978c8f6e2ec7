"""
Pytest configuration and fixtures for HEMSAEUCC tests.

Provides common fixtures for identities, the relay store and an
in-process relay reachable through a FastAPI TestClient.
"""

import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from hemsaeucc.client import RelayClient
from hemsaeucc.identity import Identity, IdentityManager
from hemsaeucc.messenger import Messenger
from hemsaeucc.relay import create_app
from hemsaeucc.relay_store import RelayStore


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """
    Create a temporary directory for test data.

    Yields:
        Path: Temporary directory path
    """
    tmp = Path(tempfile.mkdtemp(prefix="hemsaeucc_test_"))
    try:
        yield tmp
    finally:
        shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def alice(temp_dir: Path) -> Identity:
    return IdentityManager(temp_dir / "alice").generate()


@pytest.fixture
def bob(temp_dir: Path) -> Identity:
    return IdentityManager(temp_dir / "bob").generate()


@pytest.fixture
def store(temp_dir: Path) -> Generator[RelayStore, None, None]:
    """Open a relay store in the temp directory."""
    relay_store = RelayStore(temp_dir / "relay" / "messages.db")
    try:
        yield relay_store
    finally:
        relay_store.close()


@pytest.fixture
def relay_http(store: RelayStore) -> Generator[TestClient, None, None]:
    """In-process relay application."""
    with TestClient(create_app(store)) as client:
        yield client


@pytest.fixture
def relay_client(relay_http: TestClient) -> RelayClient:
    """RelayClient talking to the in-process relay."""
    return RelayClient("http://testserver", http_client=relay_http)


@pytest.fixture
def alice_messenger(alice: Identity, relay_client: RelayClient) -> Messenger:
    return Messenger(alice, relay_client)


@pytest.fixture
def bob_messenger(bob: Identity, relay_client: RelayClient) -> Messenger:
    return Messenger(bob, relay_client)


# Pytest marks
def pytest_configure(config):
    """
    Configure pytest markers.

    Args:
        config: Pytest configuration object
    """
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")


def pytest_collection_modifyitems(config, items):
    """Add markers based on test location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
