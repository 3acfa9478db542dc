"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from .models import ActivationCode, CodeQuery, CodeStatus, LogQuery, VerificationLogEntry


class CodeStore(Protocol):
    """Port interface for activation code persistence."""

    def find(self, code: str, product_key: str) -> ActivationCode | None:
        """
        Find an ACTIVE code by exact (code, product_key) match.

        No partial or case-insensitive matching. Inactive codes are
        reported as None, exactly like missing ones.

        Raises:
            StorageError: If the backing store fails
        """
        ...

    def get(self, code: str, product_key: str) -> ActivationCode | None:
        """Fetch a code regardless of status (administrative lookup)."""
        ...

    def insert(self, record: ActivationCode) -> None:
        """
        Store a new activation code.

        Raises:
            DuplicateCode: If (code, product_key) already exists
        """
        ...

    def update(
        self,
        code: str,
        product_key: str,
        *,
        verify_interval_hours: int | None = None,
        notes: str | None = None,
        status: CodeStatus | None = None,
    ) -> bool:
        """
        Update the mutable fields of a code. None means "leave unchanged".

        Returns:
            True if the code exists, False otherwise
        """
        ...

    def delete(self, code: str, product_key: str) -> bool:
        """Delete a code. Returns False if it did not exist."""
        ...

    def list_all(self) -> Sequence[ActivationCode]:
        """All codes, newest first."""
        ...

    def search(self, query: CodeQuery) -> Sequence[ActivationCode]:
        """Codes matching the query, newest first."""
        ...

    def count_active(self) -> int:
        """Number of codes with status ACTIVE."""
        ...

    def ping(self) -> None:
        """Raise StorageError if the store is unreachable."""
        ...


class VerificationLog(Protocol):
    """Port interface for the append-only verification audit log."""

    def append(self, entry: VerificationLogEntry) -> None:
        """Record one verification attempt. Insertion order is preserved."""
        ...

    def query(self, limit: int, filters: LogQuery | None = None) -> Sequence[VerificationLogEntry]:
        """Most recent entries first, at most `limit` of them."""
        ...

    def count(self, filters: LogQuery | None = None) -> int:
        """Number of entries matching the filters."""
        ...

    def delete_older_than(self, cutoff: datetime) -> int:
        """
        Retention sweep: remove entries with timestamp < cutoff.

        Returns:
            Number of entries removed
        """
        ...
