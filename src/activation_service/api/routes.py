"""
API routes - Verification and statistics endpoints.

This module defines the HTTP endpoints:
- POST /api/verify - Verify an activation code, get the next check-in time
- GET /api/stats - Code and verification counts

An unknown or inactive code is a business outcome, not a client error:
it returns HTTP 200 with success=false. Existing clients depend on this.
"""

from fastapi import APIRouter, Depends, status

from activation_service.api.dependencies import (
    enforce_rate_limit,
    get_app_settings,
    get_client_address,
    get_verification_service,
)
from activation_service.api.models import (
    ErrorResponse,
    StatsData,
    StatsResponse,
    VerifyData,
    VerifyRequest,
    VerifyResponse,
)
from activation_service.config.settings import Settings
from activation_service.domain.verification import VerificationService, validate_verify_input

router = APIRouter(tags=["activation"])

STATS_MESSAGE = "ok"


@router.post(
    "/verify",
    response_model=VerifyResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(enforce_rate_limit)],
    responses={
        400: {"model": ErrorResponse, "description": "Validation error"},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
        500: {"model": ErrorResponse, "description": "Internal error"},
    },
    summary="Verify an activation code",
    description="Check a code against a product. On success, returns when the "
    "client should verify again. The interval is advisory and never enforced here.",
)
async def verify(
    request_data: VerifyRequest,
    client_address: str = Depends(get_client_address),
    settings: Settings = Depends(get_app_settings),
    service: VerificationService = Depends(get_verification_service),
) -> VerifyResponse:
    """
    Verify an activation code.

    - **code**: Activation code (at most max_code_length characters, default 50)
    - **product_key**: Product identifier (same limit as code)
    - **device_id**: Optional device identifier (at most max_device_id_length characters, default 200)
    """
    validate_verify_input(
        request_data.code,
        request_data.product_key,
        request_data.device_id,
        max_length=settings.max_code_length,
        max_device_id_length=settings.max_device_id_length,
    )

    result = service.verify(
        request_data.code,
        request_data.product_key,
        device_id=request_data.device_id,
        ip_address=client_address,
    )

    if not result.success:
        return VerifyResponse(success=False, message=result.message)

    return VerifyResponse(
        success=True,
        message=result.message,
        data=VerifyData.from_grant(result.grant),
    )


@router.get(
    "/stats",
    response_model=StatsResponse,
    responses={500: {"model": ErrorResponse, "description": "Internal error"}},
    summary="Service statistics",
    description="Active code count and today's verification counts (UTC day).",
)
async def stats(
    service: VerificationService = Depends(get_verification_service),
) -> StatsResponse:
    snapshot = service.get_stats()
    return StatsResponse(
        success=True,
        message=STATS_MESSAGE,
        data=StatsData.from_snapshot(snapshot),
    )
