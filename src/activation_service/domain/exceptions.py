"""
Domain exceptions - Semantic error types for activation verification.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.

A code that is absent or inactive is NOT an exception: it is a normal
failed verification result (see VerificationService.verify).
"""


class ActivationError(Exception):
    """Base class for activation domain errors."""

    pass


class ValidationError(ActivationError):
    """Input is empty, too long, or contains forbidden patterns."""

    pass


class DuplicateCode(ActivationError):
    """The (code, product_key) pair already exists in the code store."""

    pass


class StorageError(ActivationError):
    """The persistence layer failed. Message is safe to log, not to return."""

    pass
