"""Integration test fixtures.

This module starts the mock administrative gateway on a free local port in
a background thread so the REST provider can be exercised over real HTTP.
"""

import logging
import socket
import threading
from datetime import datetime, timedelta
from typing import Iterator, Tuple

import pytest
from werkzeug.serving import make_server

from fedfarm.config.schema import ProviderConfig
from fedfarm.mock_gateway.app import create_app
from fedfarm.providers.memory import InMemoryProvider
from fedfarm.providers.rest import RestProvider

logger = logging.getLogger(__name__)


def find_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def unused_port() -> int:
    """A local port nothing listens on."""
    return find_free_port()


@pytest.fixture
def gateway(make_descriptor, now: datetime) -> Iterator[Tuple[str, InMemoryProvider]]:
    """Run a mock gateway for the duration of one test.

    Yields:
        (base URL, backing in-memory provider)
    """
    backing = InMemoryProvider(
        certificates=[
            make_descriptor("OLD1", not_after=now + timedelta(days=30)),
            make_descriptor("NEW2", not_after=now + timedelta(days=700)),
        ]
    )
    server = make_server("127.0.0.1", find_free_port(), create_app(backing))
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    base_url = f"http://127.0.0.1:{server.server_port}/adfs/admin"
    logger.info(f"Mock gateway started at {base_url}")

    yield base_url, backing

    server.shutdown()
    thread.join(timeout=5)


@pytest.fixture
def rest_provider(gateway: Tuple[str, InMemoryProvider]) -> Iterator[RestProvider]:
    """REST provider pointed at the mock gateway, without retries."""
    base_url, _ = gateway
    with RestProvider(ProviderConfig(base_url=base_url, max_retries=0, timeout_connect=2, timeout_read=5)) as provider:
        yield provider
