"""Domain exceptions for business rule violations."""


class DomainError(Exception):
    """Base exception for domain layer."""


class EntityNotFoundError(DomainError):
    """Raised when a document is not found in the store."""


class ReferenceConflictError(DomainError):
    """Raised when the store refuses a delete because other documents still reference it."""

    def __init__(self, message: str, referencing_ids: list[str] | None = None) -> None:
        super().__init__(message)
        self.referencing_ids = list(referencing_ids or [])


class TransactionLimitError(DomainError):
    """Raised when a transaction holds more mutations than the store accepts."""


class InfrastructureError(DomainError):
    """Raised when infrastructure operations fail (DB, network, etc.)."""


class ScanError(InfrastructureError):
    """Raised when reference discovery could not read every dependent document."""
