"""Domain layer exports."""

from domain.exceptions import (
    DomainError,
    EntityNotFoundError,
    ReferenceConflictError,
)
from domain.value_objects import DocumentKind, TimesheetStatus

__all__ = [
    "DocumentKind",
    "DomainError",
    "EntityNotFoundError",
    "ReferenceConflictError",
    "TimesheetStatus",
]
