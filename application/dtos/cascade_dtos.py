from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field

from domain.value_objects.document_kind import ActorRole, DocumentKind


class CascadeState(StrEnum):
    SCANNING = "scanning"
    EVALUATING = "evaluating"
    BLOCKED = "blocked"
    CLEANING = "cleaning"
    DELETING = "deleting"
    DONE = "done"
    DELETE_CONFLICT = "delete_conflict"


class DeletionRequest(BaseModel):
    target_id: str
    target_kind: DocumentKind
    actor_role: ActorRole


class BatchOutcome(BaseModel):
    """What happened to one list of mutations handed to the batch executor."""

    committed_count: int = 0
    chunk_count: int = 0
    failed_chunk_indices: list[int] = Field(default_factory=list)
    failed_document_ids: list[str] = Field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return bool(self.failed_chunk_indices)


class BatchFailure(BaseModel):
    stage: str
    batch_index: int


class StageOutcome(BaseModel):
    name: str
    holder_kind: DocumentKind
    planned_count: int
    outcome: BatchOutcome


class PlannedStage(BaseModel):
    name: str
    holder_kind: DocumentKind
    operation: str  # "patch" | "delete"
    mutation_count: int
    document_ids: list[str] = Field(default_factory=list)


class DeleteConflict(BaseModel):
    """The store refused the final delete because something still references the target."""

    has_timesheet_history: bool
    error: str
    details: str
    suggestion: str
    referencing_ids: list[str] = Field(default_factory=list)
    referencing_kinds: list[str] = Field(default_factory=list)
    partial_cleanup: bool = False


class CascadeResult(BaseModel):
    target_id: str
    target_kind: DocumentKind
    deleted_entity_id: str | None = None
    removed_references_by_kind: dict[DocumentKind, int] = Field(default_factory=dict)
    batch_failures: list[BatchFailure] = Field(default_factory=list)
    stages: list[StageOutcome] = Field(default_factory=list)
    states: list[CascadeState] = Field(default_factory=list)
    already_deleted: bool = False
    delete_conflict: DeleteConflict | None = None

    @property
    def final_state(self) -> CascadeState | None:
        return self.states[-1] if self.states else None

    @property
    def succeeded(self) -> bool:
        return self.final_state == CascadeState.DONE


class DeletionPlan(BaseModel):
    target_id: str
    target_kind: DocumentKind
    target_name: str
    stages: list[PlannedStage] = Field(default_factory=list)

    @property
    def total_mutations(self) -> int:
        return sum(stage.mutation_count for stage in self.stages)
