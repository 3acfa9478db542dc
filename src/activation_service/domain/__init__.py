"""
Domain layer - Pure business logic with zero framework imports.

This package contains the activation verification rule, the records it
works with, and the port interfaces it requires from infrastructure.
"""

from .exceptions import ActivationError, DuplicateCode, StorageError, ValidationError
from .models import (
    ActivationCode,
    CodeQuery,
    CodeStatus,
    LogQuery,
    StatsSnapshot,
    VerificationGrant,
    VerificationLogEntry,
    VerificationResult,
    VerifyOutcome,
)
from .ports import CodeStore, VerificationLog
from .verification import VerificationService

__all__ = [
    "ActivationCode",
    "ActivationError",
    "CodeQuery",
    "CodeStatus",
    "CodeStore",
    "DuplicateCode",
    "LogQuery",
    "StatsSnapshot",
    "StorageError",
    "ValidationError",
    "VerificationGrant",
    "VerificationLog",
    "VerificationLogEntry",
    "VerificationResult",
    "VerificationService",
    "VerifyOutcome",
]
