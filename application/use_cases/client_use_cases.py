from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from returns.result import Failure, Result, Success

from application.dtos.client_dtos import ClientArchivedResponse
from application.dtos.errors import AppError
from application.mappers.conflict_mappers import ConflictMapper
from domain.exceptions import EntityNotFoundError, InfrastructureError, ScanError
from domain.value_objects.document_kind import DocumentKind

if TYPE_CHECKING:
    from application.ports.document_store import DocumentStore
    from application.sagas.cascade_orchestrator import CascadeOrchestrator

logger = structlog.get_logger()


class ArchiveClientUseCase:
    """Soft-delete a client by flagging it archived.

    Clients are never removed from the store; the reference check still runs
    so a client with active projects stays visible.
    """

    def __init__(self, orchestrator: CascadeOrchestrator, document_store: DocumentStore) -> None:
        self.orchestrator = orchestrator
        self.document_store = document_store

    async def execute(self, client_id: str) -> Result[ClientArchivedResponse, AppError]:
        try:
            _, _, report = await self.orchestrator.assess(client_id, DocumentKind.CLIENT)
        except EntityNotFoundError:
            return Failure(AppError("not_found", "Client not found"))
        except ScanError as e:
            logger.warning("client_reference_scan_failed", client_id=client_id, error=str(e))
            return Failure(AppError("infrastructure", f"Failed to archive client: {e!s}"))

        if report.blocking:
            return Failure(
                ConflictMapper.to_app_error(
                    report,
                    "blocked",
                    extra={"activeProjectsCount": report.count_for("active_projects")},
                ),
            )

        try:
            client = await self.document_store.patch(client_id, set_fields={"isArchived": True})
        except InfrastructureError as e:
            logger.error("client_archive_failed", client_id=client_id, error=str(e))
            return Failure(AppError("infrastructure", f"Failed to archive client: {e!s}"))
        if client is None:
            return Failure(AppError("not_found", "Client not found"))

        logger.info("client_archived", client_id=client_id)
        return Success(ClientArchivedResponse(client=client))
