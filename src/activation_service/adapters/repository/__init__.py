"""Repository adapters - Database and in-memory implementations."""

from .memory import InMemoryCodeStore, InMemoryVerificationLog
from .postgres import PostgresCodeStore, PostgresVerificationLog, run_migrations

__all__ = [
    "InMemoryCodeStore",
    "InMemoryVerificationLog",
    "PostgresCodeStore",
    "PostgresVerificationLog",
    "run_migrations",
]
