"""
Test configuration and fixtures for the roomlink test suite.

Environment defaults are set before any roomlink module is imported so that
configuration loaded at import time sees test values.
"""

import os
from collections.abc import Callable, Generator

import pytest

os.environ.setdefault("LOGGING_ENVIRONMENT", "unit_test")
os.environ.setdefault("LOGGING_LEVEL", "DEBUG")
os.environ.setdefault("ROOMLINK_URL", "ws://relay.test:8080")
os.environ.setdefault("ROOMLINK_GAME_NAME", "testGame")

# pylint: disable=wrong-import-position  # Reason: environment must be set before roomlink config is imported
from roomlink.client.net_client import NetClient  # noqa: E402
from roomlink.config import reset_config  # noqa: E402
from roomlink.config.models import ClientConfig  # noqa: E402
from roomlink.tests.fixtures.relay_backend import FakeTransport, InMemoryRelayBackend  # noqa: E402

TEST_URL = "ws://relay.test:8080"
TEST_GAME = "testGame"


@pytest.fixture(autouse=True)
def reset_config_singleton() -> Generator[None, None, None]:
    """Ensure every test starts with a freshly loaded configuration."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def client_config() -> ClientConfig:
    return ClientConfig(url=TEST_URL, game_name=TEST_GAME)


@pytest.fixture
def relay_backend() -> InMemoryRelayBackend:
    return InMemoryRelayBackend()


@pytest.fixture
def make_client(relay_backend: InMemoryRelayBackend) -> Callable[..., NetClient]:
    """Factory for NetClients wired to the shared in-memory backend."""

    def _make(name: str = "client", **settings) -> NetClient:
        settings.setdefault("game_name", TEST_GAME)
        return NetClient.for_url(
            TEST_URL,
            transport_factory=relay_backend.transport_factory,
            name=name,
            **settings,
        )

    return _make


@pytest.fixture
def transports() -> list[FakeTransport]:
    """Every standalone FakeTransport created by the `isolated_client` fixture, in order."""
    return []


@pytest.fixture
def isolated_client(client_config: ClientConfig, transports: list[FakeTransport]) -> NetClient:
    """A NetClient whose transports have no backend; tests drive inbound frames by hand."""

    def _factory(url: str) -> FakeTransport:
        transport = FakeTransport(url)
        transports.append(transport)
        return transport

    return NetClient(client_config, transport_factory=_factory, name="isolated")


@pytest.fixture
def assigned_client(isolated_client: NetClient, transports: list[FakeTransport]) -> NetClient:
    """An isolated client that is connected and has been assigned player id "7"."""
    isolated_client.connect()
    transport = transports[-1]
    transport.simulate_open()
    transport.simulate_message({"type": "assignId", "playerId": 7})
    return isolated_client
