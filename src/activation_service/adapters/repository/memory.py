"""
In-memory repository adapters - Implement CodeStore and VerificationLog.

Process-local storage used by tests and by STORE_BACKEND=memory
deployments. State lives on the instance, never at module level, so
each application (or test) owns its own data.
"""

import threading
from dataclasses import replace
from datetime import datetime

from activation_service.domain.exceptions import DuplicateCode
from activation_service.domain.models import (
    ActivationCode,
    CodeQuery,
    CodeStatus,
    LogQuery,
    VerificationLogEntry,
)


class InMemoryCodeStore:
    """
    Implements CodeStore protocol with a dict keyed by (code, product_key).

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self) -> None:
        self._records: dict[tuple[str, str], ActivationCode] = {}
        self._lock = threading.Lock()

    def find(self, code: str, product_key: str) -> ActivationCode | None:
        record = self.get(code, product_key)
        if record is None or record.status != CodeStatus.ACTIVE:
            return None
        return record

    def get(self, code: str, product_key: str) -> ActivationCode | None:
        with self._lock:
            return self._records.get((code, product_key))

    def insert(self, record: ActivationCode) -> None:
        key = (record.code, record.product_key)
        with self._lock:
            if key in self._records:
                raise DuplicateCode(f"{record.code} ({record.product_key})")
            self._records[key] = record

    def update(
        self,
        code: str,
        product_key: str,
        *,
        verify_interval_hours: int | None = None,
        notes: str | None = None,
        status: CodeStatus | None = None,
    ) -> bool:
        changes: dict[str, object] = {}
        if verify_interval_hours is not None:
            changes["verify_interval_hours"] = verify_interval_hours
        if notes is not None:
            changes["notes"] = notes
        if status is not None:
            changes["status"] = CodeStatus(status)

        with self._lock:
            current = self._records.get((code, product_key))
            if current is None:
                return False
            # replace() re-runs __post_init__, so invalid intervals still raise
            self._records[(code, product_key)] = replace(current, **changes)
            return True

    def delete(self, code: str, product_key: str) -> bool:
        with self._lock:
            return self._records.pop((code, product_key), None) is not None

    def list_all(self) -> list[ActivationCode]:
        return self.search(CodeQuery())

    def search(self, query: CodeQuery) -> list[ActivationCode]:
        with self._lock:
            records = list(self._records.values())

        matches = [
            record
            for record in records
            if (query.code is None or query.code in record.code)
            and (query.product_key is None or query.product_key in record.product_key)
            and (query.status is None or record.status == query.status)
        ]
        # Newest first; among equal timestamps, most recently inserted first
        return sorted(reversed(matches), key=lambda r: r.created_at, reverse=True)

    def count_active(self) -> int:
        with self._lock:
            return sum(1 for r in self._records.values() if r.status == CodeStatus.ACTIVE)

    def ping(self) -> None:
        return None


class InMemoryVerificationLog:
    """
    Implements VerificationLog protocol with an append-only list.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self) -> None:
        self._entries: list[VerificationLogEntry] = []
        self._lock = threading.Lock()

    def append(self, entry: VerificationLogEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    def query(self, limit: int, filters: LogQuery | None = None) -> list[VerificationLogEntry]:
        with self._lock:
            indexed = list(enumerate(self._entries))

        matching = [(i, e) for i, e in indexed if _matches(e, filters)]
        matching.sort(key=lambda item: (item[1].timestamp, item[0]), reverse=True)
        return [entry for _, entry in matching[:limit]]

    def count(self, filters: LogQuery | None = None) -> int:
        with self._lock:
            return sum(1 for e in self._entries if _matches(e, filters))

    def delete_older_than(self, cutoff: datetime) -> int:
        with self._lock:
            kept = [e for e in self._entries if e.timestamp >= cutoff]
            removed = len(self._entries) - len(kept)
            self._entries = kept
        return removed


def _matches(entry: VerificationLogEntry, filters: LogQuery | None) -> bool:
    if filters is None:
        return True
    if filters.code is not None and filters.code not in entry.code:
        return False
    if filters.result is not None and entry.result != filters.result:
        return False
    if filters.start is not None and entry.timestamp < filters.start:
        return False
    if filters.end is not None and entry.timestamp >= filters.end:
        return False
    return True
