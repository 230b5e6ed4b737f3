from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from returns.result import Failure, Result, Success

from application.dtos.cascade_dtos import DeletionRequest
from application.dtos.errors import AppError
from application.dtos.project_dtos import ProjectDeletedResponse
from application.mappers.conflict_mappers import ConflictMapper
from domain.exceptions import EntityNotFoundError, ScanError
from domain.services.conflict_policy import PROJECT_SUGGESTION
from domain.value_objects.conflict_report import ConflictReport
from domain.value_objects.document_kind import ActorRole, DocumentKind

if TYPE_CHECKING:
    from application.sagas.cascade_orchestrator import CascadeOrchestrator

logger = structlog.get_logger()


class DeleteProjectUseCase:
    """Delete a project that nothing pending depends on.

    Approved timesheets do not block; the store itself still refuses the
    delete if one of them holds a strong reference, which surfaces as a 409.
    """

    def __init__(self, orchestrator: CascadeOrchestrator) -> None:
        self.orchestrator = orchestrator

    async def execute(
        self,
        project_id: str,
        actor_role: ActorRole = ActorRole.ADMIN,
    ) -> Result[ProjectDeletedResponse, AppError]:
        if not project_id:
            return Failure(AppError("validation", "Project ID is required"))

        request = DeletionRequest(
            target_id=project_id,
            target_kind=DocumentKind.PROJECT,
            actor_role=actor_role,
        )
        try:
            outcome = await self.orchestrator.cascade(request)
        except EntityNotFoundError:
            return Failure(AppError("not_found", "Project not found"))
        except ScanError as e:
            logger.warning("project_reference_scan_failed", project_id=project_id, error=str(e))
            return Failure(
                AppError(
                    "infrastructure",
                    "Could not check project references. No changes were made.",
                ),
            )

        if isinstance(outcome, ConflictReport):
            return Failure(
                ConflictMapper.to_app_error(
                    outcome,
                    "conflict",
                    extra={"referencedIn": ConflictMapper.referenced_in(outcome)},
                ),
            )
        if outcome.delete_conflict is not None:
            return Failure(
                AppError(
                    "conflict",
                    "Cannot delete this project because it is referenced by other documents.",
                    details=[outcome.delete_conflict.details],
                    suggestion=PROJECT_SUGGESTION,
                ),
            )
        if outcome.already_deleted:
            return Success(ProjectDeletedResponse(message="Project already deleted or does not exist"))
        return Success(ProjectDeletedResponse(message="Project deleted successfully"))
