"""
Domain records - Plain data types shared by the service and its ports.

These are framework-free dataclasses; HTTP serialization lives in
api/models.py and persistence mapping lives in the adapters.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class CodeStatus(str, Enum):
    """Lifecycle status of an activation code."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class VerifyOutcome(str, Enum):
    """Result recorded in the verification log."""

    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class ActivationCode:
    """
    An activation code granted for one product.

    (code, product_key) is unique across the store. verify_interval_hours
    is advisory: it tells the client when to come back, nothing more.
    """

    code: str
    product_key: str
    verify_interval_hours: int = 24
    status: CodeStatus = CodeStatus.ACTIVE
    notes: str | None = None
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if self.verify_interval_hours <= 0:
            raise ValueError("verify_interval_hours must be a positive integer")

    @property
    def is_active(self) -> bool:
        return self.status == CodeStatus.ACTIVE


@dataclass(frozen=True)
class VerificationLogEntry:
    """One verification attempt. Never mutated after creation."""

    code: str
    result: VerifyOutcome
    timestamp: datetime = field(default_factory=utc_now)
    device_id: str | None = None
    ip_address: str | None = None


@dataclass(frozen=True)
class CodeQuery:
    """Admin search criteria. code/product_key match as substrings."""

    code: str | None = None
    product_key: str | None = None
    status: CodeStatus | None = None


@dataclass(frozen=True)
class LogQuery:
    """Verification log filters. start is inclusive, end is exclusive."""

    code: str | None = None
    result: VerifyOutcome | None = None
    start: datetime | None = None
    end: datetime | None = None


@dataclass(frozen=True)
class VerificationGrant:
    """Re-verification schedule handed back to the client."""

    status: CodeStatus
    activated_at: datetime
    next_verify_at: datetime
    verify_interval_hours: int


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of VerificationService.verify(). grant is set only on success."""

    success: bool
    message: str
    grant: VerificationGrant | None = None


@dataclass(frozen=True)
class StatsSnapshot:
    """Counts reported by GET /api/stats. 'today' is the current UTC day."""

    active_codes: int = 0
    today_verifications: int = 0
    today_success: int = 0
    today_failed: int = 0
    total_logs: int = 0
