from typing import Annotated

from fastapi import APIRouter, Depends, status
from lagom import Container

from application.dtos.project_dtos import ProjectDeletedResponse
from application.use_cases.project_use_cases import DeleteProjectUseCase
from interfaces.api.middleware import handle_use_case_errors
from interfaces.dependencies import Actor, get_container, require_admin

router = APIRouter(prefix="/projects", tags=["projects"])


@router.delete("/{project_id}", status_code=status.HTTP_200_OK)
@handle_use_case_errors
async def delete_project(
    project_id: str,
    container: Annotated[Container, Depends(get_container)],
    actor: Annotated[Actor, Depends(require_admin)],
) -> ProjectDeletedResponse:
    """Delete a project unless pending timesheets or tasks still use it.

    Returns:
        200 OK: Project deleted (or was already gone)
        404 Not Found: Project does not exist
        409 Conflict: Project is still in use

    """
    use_case = container[DeleteProjectUseCase]
    return await use_case.execute(project_id, actor_role=actor.role)
