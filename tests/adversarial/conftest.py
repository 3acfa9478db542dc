"""
Shared fixtures for adversarial tests.

Provides a fully wired application over in-memory stores so hostile
request patterns can be replayed without a database.
"""

from collections.abc import Callable, Generator

import pytest
from fastapi.testclient import TestClient

from activation_service.adapters.factory import Stores
from activation_service.api.main import create_app
from activation_service.config.settings import Settings

ATTACK_LIMIT = 5


@pytest.fixture
def attack_limit() -> int:
    """Requests each client may send before the attack app answers 429."""
    return ATTACK_LIMIT


@pytest.fixture
def attack_client(
    memory_settings: Callable[..., Settings], stores: Stores
) -> Generator[TestClient, None, None]:
    """Client against an app with a small per-client request allowance."""
    app = create_app(
        memory_settings(rate_limit_max_requests=ATTACK_LIMIT, rate_limit_window_seconds=3600),
        stores=stores,
    )
    with TestClient(app) as client:
        yield client


@pytest.fixture
def open_client(
    memory_settings: Callable[..., Settings], stores: Stores
) -> Generator[TestClient, None, None]:
    """Client against an app whose rate limit will not interfere."""
    app = create_app(memory_settings(rate_limit_max_requests=10_000), stores=stores)
    with TestClient(app) as client:
        yield client
