"""
Pytest configuration and shared fixtures for HWLink tests.
"""

import os
from unittest.mock import MagicMock

import pytest

# Set test environment before importing the application
os.environ["FLASK_ENV"] = "testing"
os.environ["FLASK_SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["HWLINK_WORLD_NAME"] = "demo"
os.environ["HWLINK_SECRET_KEY"] = "abc123"
os.environ["HWLINK_DEBUG_COMMANDS"] = "true"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

# Import app after setting environment
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

WORLD = "demo"
SECRET = "abc123"
# djb2("demo|alice|abc123") = 2017487796
ALICE_CODE = "NXU15W"
# djb2("demo|bob|abc123") = 774517017
BOB_CODE = "T9DN3R"


@pytest.fixture
def link_config():
    return {"WORLD_NAME": WORLD, "SECRET_KEY": SECRET}


@pytest.fixture
def memory_storage():
    """Fresh in-memory storage backend."""
    from hwlink.storage import MemoryStorage

    return MemoryStorage()


@pytest.fixture
def failing_storage():
    """Storage whose every call raises, simulating an unreachable backend."""
    from hwlink.errors import StorageUnavailableError

    storage = MagicMock()
    error = StorageUnavailableError("storage offline")
    storage.get_player_variable.side_effect = error
    storage.set_player_variable.side_effect = error
    storage.fetch_world_variable.side_effect = error
    storage.set_world_variable.side_effect = error
    return storage


@pytest.fixture
def players():
    """Registry with alice (42) and bob (7) connected."""
    from hwlink.players import PlayerRegistry

    registry = PlayerRegistry()
    registry.join(42, "alice", "sid-alice")
    registry.join(7, "bob", "sid-bob")
    return registry


@pytest.fixture
def ledger(memory_storage):
    from hwlink.ledger import UsedCodeLedger

    return UsedCodeLedger(memory_storage)


@pytest.fixture
def authority(link_config, memory_storage, players, ledger):
    from hwlink.authority import LinkAuthority

    return LinkAuthority(link_config, memory_storage, players, ledger)


@pytest.fixture
def app_and_socketio():
    """Create the Flask application and SocketIO server with in-memory storage."""
    from hwlink.factory import create_app

    app, socketio = create_app()
    app.config.update({"TESTING": True})
    return app, socketio


@pytest.fixture
def app(app_and_socketio):
    flask_app, _ = app_and_socketio
    with flask_app.app_context():
        yield flask_app


@pytest.fixture
def socketio(app_and_socketio):
    return app_and_socketio[1]


@pytest.fixture
def client(app):
    """Create a test client for the Flask application."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Create a test CLI runner for the Flask application."""
    return app.test_cli_runner()


@pytest.fixture
def connect_player(app, socketio):
    """Connect a Socket.IO test client as the given player."""
    clients = []

    def _connect(player_id, name):
        sio_client = socketio.test_client(app, auth={"playerId": player_id, "name": name})
        clients.append(sio_client)
        return sio_client

    yield _connect

    for sio_client in clients:
        if sio_client.is_connected():
            sio_client.disconnect()


# Pytest configuration hooks
def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically."""
    for item in items:
        # Add 'unit' marker to tests in unit/ directory
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)

        # Add 'integration' marker to tests in integration/ directory
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
