from typing import Annotated

from fastapi import APIRouter, Depends, status
from lagom import Container

from application.dtos.task_dtos import BulkTaskRequest, BulkTaskResponse, TaskDeletedResponse
from application.use_cases.task_use_cases import BulkTaskOperationUseCase, DeleteTaskUseCase
from interfaces.api.middleware import handle_use_case_errors
from interfaces.dependencies import Actor, get_container, require_admin_or_manager

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.post("/bulk", status_code=status.HTTP_200_OK)
@handle_use_case_errors
async def bulk_task_operation(
    request: BulkTaskRequest,
    container: Annotated[Container, Depends(get_container)],
    _: Annotated[Actor, Depends(require_admin_or_manager)],
) -> BulkTaskResponse:
    """Delete or archive many tasks; per-task problems are reported in ``errors``."""
    use_case = container[BulkTaskOperationUseCase]
    return await use_case.execute(request)


@router.delete("/{task_id}", status_code=status.HTTP_200_OK)
@handle_use_case_errors
async def delete_task(
    task_id: str,
    container: Annotated[Container, Depends(get_container)],
    actor: Annotated[Actor, Depends(require_admin_or_manager)],
) -> TaskDeletedResponse:
    """Hard-delete a task that no project or pending timesheet uses.

    Returns:
        200 OK: Task deleted
        404 Not Found: Task does not exist
        409 Conflict: Task is still in use

    """
    use_case = container[DeleteTaskUseCase]
    return await use_case.execute(task_id, actor_role=actor.role)
