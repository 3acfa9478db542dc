"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
Everything is read from app.state, which the application lifespan
populates; nothing here holds module-level state.
"""

from fastapi import Depends, Request

from activation_service.api.rate_limit import TokenBucketLimiter
from activation_service.config.settings import Settings
from activation_service.domain.ports import CodeStore, VerificationLog
from activation_service.domain.verification import VerificationService


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_code_store(request: Request) -> CodeStore:
    """Code store created during app lifespan startup."""
    return request.app.state.stores.code_store


def get_verification_log(request: Request) -> VerificationLog:
    """Verification log created during app lifespan startup."""
    return request.app.state.stores.verification_log


def get_verification_service(
    code_store: CodeStore = Depends(get_code_store),
    verification_log: VerificationLog = Depends(get_verification_log),
    settings: Settings = Depends(get_app_settings),
) -> VerificationService:
    """
    Create verification service with injected dependencies.

    Wires together the code store and verification log for the domain service.
    """
    return VerificationService(
        code_store=code_store,
        verification_log=verification_log,
        max_length=settings.max_code_length,
        max_device_id_length=settings.max_device_id_length,
    )


def get_client_address(request: Request) -> str:
    """Client address used for rate limiting and the audit log."""
    return request.client.host if request.client else "unknown"


def get_rate_limiter(request: Request) -> TokenBucketLimiter:
    return request.app.state.rate_limiter


def enforce_rate_limit(
    client_address: str = Depends(get_client_address),
    limiter: TokenBucketLimiter = Depends(get_rate_limiter),
) -> None:
    """
    Spend one token for the calling client.

    Raises:
        RateLimitExceeded: Rendered as HTTP 429 by the exception handlers
    """
    limiter.check(client_address)
