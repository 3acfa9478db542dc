"""
Verification domain service - Activation code decision rule.

This module contains the core business logic: deciding whether a code
passes and computing when the client should check back.

Advisory Re-verification Policy
===============================

A verification succeeds whenever the (code, product_key) pair exists
with status ACTIVE. The service never rejects because "too much time"
has passed or because of prior verification history.

verify_interval_hours is metadata handed back to the client as
next_verify_at. Deciding when it is time to re-verify is entirely the
client's job. This is intentional policy; do not turn it into a
server-side time-based rejection without changing the product contract.

Audit Logging
=============

Every call that passes input validation appends exactly one entry to
the verification log, success or failure. A failing log append is
reported through the application logger and never changes the result
returned to the caller.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from .exceptions import ValidationError
from .models import (
    CodeStatus,
    LogQuery,
    StatsSnapshot,
    VerificationGrant,
    VerificationLogEntry,
    VerificationResult,
    VerifyOutcome,
    utc_now,
)
from .ports import CodeStore, VerificationLog

logger = logging.getLogger(__name__)

MAX_CODE_LENGTH = 50
MAX_DEVICE_ID_LENGTH = 200

# SQL keywords rejected in code/product_key before any storage access
FORBIDDEN_INPUT_PATTERN = re.compile(
    r"\b(SELECT|INSERT|UPDATE|DELETE|DROP|CREATE|ALTER|EXEC|UNION|SCRIPT)\b",
    re.IGNORECASE,
)

SUCCESS_MESSAGE = "verification succeeded"
NOT_FOUND_MESSAGE = "code not found or product mismatch"


def validate_verify_input(
    code: str,
    product_key: str,
    device_id: str | None = None,
    *,
    max_length: int = MAX_CODE_LENGTH,
    max_device_id_length: int = MAX_DEVICE_ID_LENGTH,
) -> None:
    """
    Check verification input shape.

    Shared by the domain service and the HTTP request model so both
    layers enforce identical rules.

    Raises:
        ValidationError: On empty, oversized, or forbidden input
    """
    if not code or not product_key:
        raise ValidationError("code and product_key are required")
    if len(code) > max_length or len(product_key) > max_length:
        raise ValidationError(f"code and product_key must be at most {max_length} characters")
    if FORBIDDEN_INPUT_PATTERN.search(code) or FORBIDDEN_INPUT_PATTERN.search(product_key):
        raise ValidationError("input contains forbidden characters")
    if device_id is not None and len(device_id) > max_device_id_length:
        raise ValidationError(f"device_id must be at most {max_device_id_length} characters")


@dataclass
class VerificationService:
    """
    Domain service for activation code verification.

    Reads the code store, appends to the verification log, and
    computes the advisory re-verification schedule.
    """

    code_store: CodeStore
    verification_log: VerificationLog
    clock: Callable[[], datetime] = field(default=utc_now)
    max_length: int = MAX_CODE_LENGTH
    max_device_id_length: int = MAX_DEVICE_ID_LENGTH

    def verify(
        self,
        code: str,
        product_key: str,
        device_id: str | None = None,
        ip_address: str | None = None,
    ) -> VerificationResult:
        """
        Verify an activation code for a product.

        Args:
            code: Activation code (exact match)
            product_key: Product identifier (exact match)
            device_id: Optional client device identifier, logged only
            ip_address: Optional client address, logged only

        Returns:
            VerificationResult; success=False for unknown or inactive codes

        Raises:
            ValidationError: If input is malformed (storage is not touched)
            StorageError: If the code lookup fails
        """
        validate_verify_input(
            code,
            product_key,
            device_id,
            max_length=self.max_length,
            max_device_id_length=self.max_device_id_length,
        )

        record = self.code_store.find(code, product_key)
        now = self.clock()

        if record is None or not record.is_active:
            self._record_attempt(code, device_id, ip_address, VerifyOutcome.FAILED, now)
            return VerificationResult(success=False, message=NOT_FOUND_MESSAGE)

        grant = VerificationGrant(
            status=CodeStatus.ACTIVE,
            activated_at=now,
            next_verify_at=now + timedelta(hours=record.verify_interval_hours),
            verify_interval_hours=record.verify_interval_hours,
        )
        self._record_attempt(code, device_id, ip_address, VerifyOutcome.SUCCESS, now)
        return VerificationResult(success=True, message=SUCCESS_MESSAGE, grant=grant)

    def get_stats(self) -> StatsSnapshot:
        """
        Snapshot of code and log counts.

        "Today" is the UTC calendar day containing the current clock time.
        today_verifications is always today_success + today_failed.
        """
        now = self.clock()
        day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        day_end = day_start + timedelta(days=1)

        success = self.verification_log.count(
            LogQuery(result=VerifyOutcome.SUCCESS, start=day_start, end=day_end)
        )
        failed = self.verification_log.count(
            LogQuery(result=VerifyOutcome.FAILED, start=day_start, end=day_end)
        )

        return StatsSnapshot(
            active_codes=self.code_store.count_active(),
            today_verifications=success + failed,
            today_success=success,
            today_failed=failed,
            total_logs=self.verification_log.count(),
        )

    def purge_old_logs(self, retention_days: int) -> int:
        """
        Retention sweep over the verification log.

        Args:
            retention_days: Entries older than this many days are removed

        Returns:
            Number of entries removed
        """
        if retention_days <= 0:
            raise ValueError("retention_days must be positive")

        cutoff = self.clock() - timedelta(days=retention_days)
        removed = self.verification_log.delete_older_than(cutoff)
        logger.info("Purged %d verification log entries older than %s", removed, cutoff.isoformat())
        return removed

    def _record_attempt(
        self,
        code: str,
        device_id: str | None,
        ip_address: str | None,
        result: VerifyOutcome,
        timestamp: datetime,
    ) -> None:
        entry = VerificationLogEntry(
            code=code,
            result=result,
            timestamp=timestamp,
            device_id=device_id,
            ip_address=ip_address,
        )
        try:
            self.verification_log.append(entry)
        except Exception:
            # Audit failures must not change the verification outcome
            logger.exception("Failed to record %s verification for code %s", result.value, code)
