"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Every response shares the {success, message, timestamp} envelope.
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from activation_service.domain.models import StatsSnapshot, VerificationGrant, utc_now
from activation_service.domain.verification import FORBIDDEN_INPUT_PATTERN


class VerifyRequest(BaseModel):
    """
    Request model for activation code verification.

    Length limits come from Settings (max_code_length, max_device_id_length)
    and are enforced by the route, so they are not fixed here.
    """

    code: str = Field(..., min_length=1, description="Activation code")
    product_key: str = Field(..., min_length=1, description="Product identifier")
    device_id: str | None = Field(default=None, description="Optional client device id")

    @field_validator("code", "product_key")
    @classmethod
    def reject_forbidden_patterns(cls, value: str) -> str:
        if FORBIDDEN_INPUT_PATTERN.search(value):
            raise ValueError("input contains forbidden characters")
        return value


class Envelope(BaseModel):
    """Fields common to every JSON response."""

    success: bool
    message: str
    timestamp: datetime = Field(default_factory=utc_now)


class VerifyData(BaseModel):
    """Re-verification schedule returned on success."""

    status: str
    next_verify_at: datetime
    verify_interval_hours: int
    activated_at: datetime

    @classmethod
    def from_grant(cls, grant: VerificationGrant) -> "VerifyData":
        return cls(
            status=grant.status.value,
            next_verify_at=grant.next_verify_at,
            verify_interval_hours=grant.verify_interval_hours,
            activated_at=grant.activated_at,
        )


class VerifyResponse(Envelope):
    """Response model for POST /api/verify. data is omitted on failure."""

    data: VerifyData | None = None


class StatsData(BaseModel):
    """Counts for the current UTC day plus totals."""

    active_codes: int
    today_verifications: int
    today_success: int
    today_failed: int
    total_logs: int

    @classmethod
    def from_snapshot(cls, snapshot: StatsSnapshot) -> "StatsData":
        return cls(
            active_codes=snapshot.active_codes,
            today_verifications=snapshot.today_verifications,
            today_success=snapshot.today_success,
            today_failed=snapshot.today_failed,
            total_logs=snapshot.total_logs,
        )


class StatsResponse(Envelope):
    """Response model for GET /api/stats."""

    data: StatsData


class HealthResponse(BaseModel):
    """Response model for GET /health."""

    status: str
    service: str
    version: str
    timestamp: datetime = Field(default_factory=utc_now)
    environment: str
    database: str


class ErrorResponse(Envelope):
    """Standard error response model."""

    success: bool = False
