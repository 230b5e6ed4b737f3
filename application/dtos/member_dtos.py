from typing import Any, Literal

from pydantic import Field

from application.dtos.camel_model import CamelModel


class StageSummary(CamelModel):
    name: str
    holder_kind: str
    planned: int
    committed: int
    failed_batches: list[int] = Field(default_factory=list)


class CascadeSummary(CamelModel):
    """What the cascade touched on its way to deleting the member."""

    removed_references: dict[str, int] = Field(default_factory=dict)
    stages: list[StageSummary] = Field(default_factory=list)
    batch_failures: int = 0
    states: list[str] = Field(default_factory=list)


class MemberDeletionResponse(CamelModel):
    success: bool = True
    message: str
    action: Literal["deleted"] = "deleted"
    result: CascadeSummary | None = None


class PlannedStageResponse(CamelModel):
    name: str
    holder_kind: str
    operation: str
    mutation_count: int
    document_ids: list[str] = Field(default_factory=list)


class DeletionPlanResponse(CamelModel):
    member_id: str
    member_name: str
    stages: list[PlannedStageResponse] = Field(default_factory=list)
    total_mutations: int = 0


class AssignTeamMembersRequest(CamelModel):
    user_ids: list[str] = Field(default_factory=list)
    user_id: str | None = None
    """Single-user form kept for older clients."""

    def requested_ids(self) -> list[str]:
        if self.user_ids:
            return list(dict.fromkeys(self.user_ids))
        return [self.user_id] if self.user_id else []


class AssignTeamMembersResponse(CamelModel):
    success: bool = True
    message: str
    team: dict[str, Any] | None = None
    assigned_count: int
