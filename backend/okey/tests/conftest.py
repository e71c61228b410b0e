import random

import pytest

from okey.logic.settings import GameSettings
from okey.messaging.hub import ConnectionHub
from okey.messaging.router import MessageRouter
from okey.server.app import create_app
from okey.server.settings import OkeyServerSettings
from okey.session.registry import RoomRegistry
from okey.tests.mocks.connection import MockConnection

TEST_SEED = 20240611


@pytest.fixture
def rng():
    return random.Random(TEST_SEED)


@pytest.fixture
def game_settings():
    """Rules with no bot pacing, so bot turns resolve within a few loop ticks."""
    return GameSettings(bot_draw_delay=0, bot_discard_delay=0)


@pytest.fixture
def registry(game_settings, rng):
    registry = RoomRegistry(settings=game_settings, rng=rng)
    yield registry
    registry.shutdown()


@pytest.fixture
def hub():
    return ConnectionHub()


@pytest.fixture
def message_router(registry, hub):
    return MessageRouter(registry, hub, max_rooms=10)


@pytest.fixture
def mock_connection():
    return MockConnection()


@pytest.fixture
def server_settings():
    return OkeyServerSettings(
        cors_origins=["http://localhost:5173"],
        bot_draw_delay=0,
        bot_discard_delay=0,
        max_rooms=10,
    )


@pytest.fixture
def app(server_settings, registry, hub, message_router):
    return create_app(settings=server_settings, registry=registry, hub=hub, message_router=message_router)
