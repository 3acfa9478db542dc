"""
Store wiring - Select CodeStore/VerificationLog implementations.

One interface, two implementations. The backend is chosen from
Settings.store_backend; callers own the returned Stores and must
close() them.
"""

import logging
from dataclasses import dataclass, replace

from psycopg_pool import ConnectionPool

from activation_service.config.settings import Settings
from activation_service.domain.exceptions import DuplicateCode
from activation_service.domain.models import ActivationCode, utc_now
from activation_service.domain.ports import CodeStore, VerificationLog

from .repository.memory import InMemoryCodeStore, InMemoryVerificationLog
from .repository.postgres import PostgresCodeStore, PostgresVerificationLog, run_migrations

logger = logging.getLogger(__name__)

DEMO_CODES = (
    ActivationCode(code="DEMO_001", product_key="doubao_plugin", verify_interval_hours=24),
    ActivationCode(code="DEMO_002", product_key="doubao_plugin", verify_interval_hours=24),
    ActivationCode(code="PREMIUM_001", product_key="doubao_plugin", verify_interval_hours=72),
    ActivationCode(code="TEST_001", product_key="test_product", verify_interval_hours=1),
    ActivationCode(
        code="BATCH_001",
        product_key="doubao_plugin",
        verify_interval_hours=168,
        notes="weekly verification premium code",
    ),
)


@dataclass
class Stores:
    """Both persistence ports plus the resource that backs them."""

    code_store: CodeStore
    verification_log: VerificationLog
    pool: ConnectionPool | None = None

    def close(self) -> None:
        if self.pool is not None:
            self.pool.close()
            logger.info("Database connection pool closed")


def build_stores(settings: Settings) -> Stores:
    """
    Create stores for the configured backend.

    For postgres this opens a connection pool and runs migrations;
    a failure here is fatal for the calling process.
    """
    if settings.store_backend == "memory":
        logger.info("Using in-memory stores")
        return Stores(code_store=InMemoryCodeStore(), verification_log=InMemoryVerificationLog())

    logger.info("Connecting to database...")
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
        open=True,
    )
    try:
        logger.info("Running database migrations...")
        run_migrations(pool)
    except Exception:
        pool.close()
        raise

    return Stores(
        code_store=PostgresCodeStore(pool),
        verification_log=PostgresVerificationLog(pool),
        pool=pool,
    )


def seed_demo_codes(code_store: CodeStore) -> int:
    """
    Insert the demo activation codes, skipping ones that already exist.

    Returns:
        Number of codes inserted
    """
    inserted = 0
    for record in DEMO_CODES:
        try:
            code_store.insert(replace(record, created_at=utc_now()))
        except DuplicateCode:
            continue
        inserted += 1
    logger.info("Seeded %d demo activation code(s)", inserted)
    return inserted
