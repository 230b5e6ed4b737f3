from typing import Annotated

from fastapi import APIRouter, Depends, status
from lagom import Container

from application.dtos.client_dtos import ClientArchivedResponse
from application.use_cases.client_use_cases import ArchiveClientUseCase
from interfaces.api.middleware import handle_use_case_errors
from interfaces.dependencies import Actor, get_container, require_admin_or_manager

router = APIRouter(prefix="/clients", tags=["clients"])


@router.delete("/{client_id}", status_code=status.HTTP_200_OK)
@handle_use_case_errors
async def archive_client(
    client_id: str,
    container: Annotated[Container, Depends(get_container)],
    _: Annotated[Actor, Depends(require_admin_or_manager)],
) -> ClientArchivedResponse:
    """Archive a client (soft delete) once it has no active projects."""
    use_case = container[ArchiveClientUseCase]
    return await use_case.execute(client_id)
