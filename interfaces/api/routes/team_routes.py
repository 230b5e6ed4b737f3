from typing import Annotated

from fastapi import APIRouter, Depends, status
from lagom import Container

from application.dtos.member_dtos import (
    AssignTeamMembersRequest,
    AssignTeamMembersResponse,
    DeletionPlanResponse,
    MemberDeletionResponse,
)
from application.use_cases.member_use_cases import (
    AssignTeamMembersUseCase,
    DeleteArchivedMemberUseCase,
    DeleteMemberUseCase,
    PlanMemberDeletionUseCase,
)
from interfaces.api.middleware import handle_use_case_errors
from interfaces.dependencies import Actor, get_container, require_admin

router = APIRouter(prefix="/team", tags=["team"])


@router.delete("/members/{member_id}", status_code=status.HTTP_200_OK)
@handle_use_case_errors
async def delete_member(
    member_id: str,
    container: Annotated[Container, Depends(get_container)],
    actor: Annotated[Actor, Depends(require_admin)],
) -> MemberDeletionResponse:
    """Delete a member and every reference to them.

    Returns:
        200 OK: Member deleted, with a summary of the cleanup
        400 Bad Request: Member has unsubmitted or submitted timesheets
        404 Not Found: Member does not exist
        409 Conflict: The store still holds references after cleanup

    """
    use_case = container[DeleteMemberUseCase]
    return await use_case.execute(member_id, actor_role=actor.role)


@router.get("/members/{member_id}/deletion-plan", status_code=status.HTTP_200_OK)
@handle_use_case_errors
async def plan_member_deletion(
    member_id: str,
    container: Annotated[Container, Depends(get_container)],
    actor: Annotated[Actor, Depends(require_admin)],
) -> DeletionPlanResponse:
    """Preview the cleanup a member deletion would perform. Writes nothing."""
    use_case = container[PlanMemberDeletionUseCase]
    return await use_case.execute(member_id, actor_role=actor.role)


@router.delete("/archived/{user_id}/delete", status_code=status.HTTP_200_OK)
@handle_use_case_errors
async def delete_archived_member(
    user_id: str,
    container: Annotated[Container, Depends(get_container)],
    actor: Annotated[Actor, Depends(require_admin)],
) -> MemberDeletionResponse:
    """Permanently delete an archived member."""
    use_case = container[DeleteArchivedMemberUseCase]
    return await use_case.execute(user_id, actor_role=actor.role)


@router.post("/{manager_id}/members", status_code=status.HTTP_200_OK)
@handle_use_case_errors
async def assign_team_members(
    manager_id: str,
    request: AssignTeamMembersRequest,
    container: Annotated[Container, Depends(get_container)],
    _: Annotated[Actor, Depends(require_admin)],
) -> AssignTeamMembersResponse:
    """Assign one or more users to the manager's active team."""
    use_case = container[AssignTeamMembersUseCase]
    return await use_case.execute(manager_id, request)
