from .conflict_report import ConflictReason, ConflictReport
from .document_kind import ActorRole, DocumentKind, TimesheetStatus
from .document_query import Condition, DocumentQuery, Operator
from .field_path import FieldPath
from .mutation import DeleteMutation, Mutation, PatchMutation
from .reference import RawId, Reference, RefObject
from .reference_hit import ReferenceHit, ReferenceHitSet

__all__ = [
    "ActorRole",
    "Condition",
    "ConflictReason",
    "ConflictReport",
    "DeleteMutation",
    "DocumentKind",
    "DocumentQuery",
    "FieldPath",
    "Mutation",
    "Operator",
    "PatchMutation",
    "RawId",
    "RefObject",
    "Reference",
    "ReferenceHit",
    "ReferenceHitSet",
    "TimesheetStatus",
]
