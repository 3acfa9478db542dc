"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- In-memory stores and a fixed clock
- Verification service construction
- Settings for an in-memory application
"""

from collections.abc import Callable
from datetime import datetime, timezone

import pytest

from activation_service.adapters.factory import Stores
from activation_service.adapters.repository.memory import (
    InMemoryCodeStore,
    InMemoryVerificationLog,
)
from activation_service.config.settings import Settings
from activation_service.domain.models import ActivationCode, CodeStatus
from activation_service.domain.verification import VerificationService

FIXED_NOW = datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


class FixedClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def code_store() -> InMemoryCodeStore:
    store = InMemoryCodeStore()
    store.insert(ActivationCode(code="DEMO_001", product_key="doubao_plugin", verify_interval_hours=24))
    store.insert(ActivationCode(code="PREMIUM_001", product_key="doubao_plugin", verify_interval_hours=72))
    store.insert(
        ActivationCode(
            code="DISABLED_001",
            product_key="doubao_plugin",
            verify_interval_hours=24,
            status=CodeStatus.INACTIVE,
        )
    )
    return store


@pytest.fixture
def verification_log() -> InMemoryVerificationLog:
    return InMemoryVerificationLog()


@pytest.fixture
def service(
    code_store: InMemoryCodeStore,
    verification_log: InMemoryVerificationLog,
    clock: FixedClock,
) -> VerificationService:
    return VerificationService(code_store=code_store, verification_log=verification_log, clock=clock)


@pytest.fixture
def stores(code_store: InMemoryCodeStore, verification_log: InMemoryVerificationLog) -> Stores:
    return Stores(code_store=code_store, verification_log=verification_log)


@pytest.fixture
def memory_settings() -> Callable[..., Settings]:
    """Factory for settings that never touch PostgreSQL or a .env file."""

    def make(**overrides: object) -> Settings:
        values: dict[str, object] = {"store_backend": "memory", "environment": "test"}
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return make
