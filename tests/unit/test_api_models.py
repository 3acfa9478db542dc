"""
Unit tests for API request/response models.

Tests Pydantic model validation for the verify endpoint and the
serialized shape of the response envelope.
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from activation_service.api.models import (
    ErrorResponse,
    StatsData,
    VerifyData,
    VerifyRequest,
    VerifyResponse,
)
from activation_service.domain.models import CodeStatus, StatsSnapshot, VerificationGrant


class TestVerifyRequest:
    """Tests for VerifyRequest model."""

    def test_valid_request(self) -> None:
        request = VerifyRequest(code="DEMO_001", product_key="doubao_plugin")
        assert request.code == "DEMO_001"
        assert request.product_key == "doubao_plugin"
        assert request.device_id is None

    def test_device_id_accepted(self) -> None:
        request = VerifyRequest(code="DEMO_001", product_key="doubao_plugin", device_id="dev-1")
        assert request.device_id == "dev-1"

    def test_empty_code_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            VerifyRequest(code="", product_key="doubao_plugin")
        assert "code" in str(exc_info.value)

    def test_empty_product_key_rejected(self) -> None:
        with pytest.raises(ValidationError):
            VerifyRequest(code="DEMO_001", product_key="")

    def test_length_limits_left_to_settings(self) -> None:
        """Upper bounds are configurable, so the model itself accepts long values."""
        request = VerifyRequest(code="A" * 80, product_key="p", device_id="d" * 300)
        assert len(request.code) == 80

    def test_forbidden_pattern_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            VerifyRequest(code="1 UNION SELECT", product_key="p")
        assert "forbidden" in str(exc_info.value)

    def test_missing_fields_rejected(self) -> None:
        with pytest.raises(ValidationError):
            VerifyRequest(code="DEMO_001")  # type: ignore[call-arg]


class TestResponses:
    """Tests for response serialization."""

    def test_verify_data_from_grant_serializes_utc_as_z(self) -> None:
        activated = datetime(2024, 1, 1, tzinfo=timezone.utc)
        grant = VerificationGrant(
            status=CodeStatus.ACTIVE,
            activated_at=activated,
            next_verify_at=activated + timedelta(hours=24),
            verify_interval_hours=24,
        )

        data = VerifyData.from_grant(grant).model_dump(mode="json")

        assert data == {
            "status": "active",
            "next_verify_at": "2024-01-02T00:00:00Z",
            "verify_interval_hours": 24,
            "activated_at": "2024-01-01T00:00:00Z",
        }

    def test_failed_verify_response_omits_data(self) -> None:
        body = VerifyResponse(success=False, message="nope").model_dump(mode="json", exclude_none=True)

        assert "data" not in body
        assert body["success"] is False
        assert "timestamp" in body

    def test_error_response_defaults_to_failure(self) -> None:
        body = ErrorResponse(message="not found").model_dump(mode="json")

        assert body["success"] is False
        assert body["message"] == "not found"
        assert body["timestamp"].endswith("Z")

    def test_stats_data_from_snapshot(self) -> None:
        snapshot = StatsSnapshot(
            active_codes=4, today_verifications=3, today_success=2, today_failed=1, total_logs=9
        )

        assert StatsData.from_snapshot(snapshot).model_dump() == {
            "active_codes": 4,
            "today_verifications": 3,
            "today_success": 2,
            "today_failed": 1,
            "total_logs": 9,
        }
