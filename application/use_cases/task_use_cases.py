from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog
from returns.result import Failure, Result, Success

from application.dtos.cascade_dtos import DeletionRequest
from application.dtos.errors import AppError
from application.dtos.task_dtos import (
    BulkTaskError,
    BulkTaskOperation,
    BulkTaskRequest,
    BulkTaskResponse,
    BulkTaskResult,
    TaskDeletedResponse,
)
from application.mappers.conflict_mappers import ConflictMapper
from application.services.chunking import chunked
from domain.exceptions import EntityNotFoundError, InfrastructureError, ScanError
from domain.services.conflict_policy import TASK_SUGGESTION
from domain.value_objects.conflict_report import ConflictReport
from domain.value_objects.document_kind import ActorRole, DocumentKind
from domain.value_objects.document_query import Condition, DocumentQuery
from domain.value_objects.mutation import PatchMutation

if TYPE_CHECKING:
    from application.ports.document_store import DocumentStore
    from application.sagas.cascade_orchestrator import CascadeOrchestrator
    from application.services.reference_scanner import ReferenceScanner
    from domain.services.conflict_policy import ConflictPolicyEvaluator

logger = structlog.get_logger()

NOT_FOUND_MESSAGE = "Task not found or already deleted"


class DeleteTaskUseCase:
    def __init__(self, orchestrator: CascadeOrchestrator) -> None:
        self.orchestrator = orchestrator

    async def execute(
        self,
        task_id: str,
        actor_role: ActorRole = ActorRole.ADMIN,
    ) -> Result[TaskDeletedResponse, AppError]:
        request = DeletionRequest(
            target_id=task_id,
            target_kind=DocumentKind.TASK,
            actor_role=actor_role,
        )
        try:
            outcome = await self.orchestrator.cascade(request)
        except EntityNotFoundError:
            return Failure(AppError("not_found", "Task not found"))
        except ScanError as e:
            logger.warning("task_reference_scan_failed", task_id=task_id, error=str(e))
            return Failure(
                AppError("infrastructure", "Could not check task references. No changes were made."),
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
                    "Cannot delete this task because it is referenced by other documents.",
                    details=[outcome.delete_conflict.details],
                    suggestion=TASK_SUGGESTION,
                ),
            )
        if outcome.already_deleted:
            return Failure(AppError("not_found", "Task not found or already deleted"))
        return Success(TaskDeletedResponse())


class BulkTaskOperationUseCase:
    """Delete or archive many tasks in one request.

    Ids that do not name a task are reported as not found and never touched.
    Deletion checks every task's references with a single batched scan and
    only deletes the unreferenced ones; referenced tasks are reported per id.
    The operation never fails as a whole once validated: every requested id
    ends up in either ``results`` or ``errors``.
    """

    def __init__(  # noqa: PLR0913
        self,
        document_store: DocumentStore,
        scanner: ReferenceScanner,
        evaluator: ConflictPolicyEvaluator,
        transaction_limit: int = 200,
        delete_chunk_size: int = 50,
    ) -> None:
        self.document_store = document_store
        self.scanner = scanner
        self.evaluator = evaluator
        self.transaction_limit = min(transaction_limit, document_store.transaction_limit)
        self.delete_chunk_size = delete_chunk_size

    async def execute(self, request: BulkTaskRequest) -> Result[BulkTaskResponse, AppError]:
        task_ids = request.task_ids
        if not task_ids:
            return Failure(AppError("validation", "Task IDs are required"))
        try:
            operation = BulkTaskOperation(request.operation)
        except ValueError:
            return Failure(AppError("validation", "Valid operation (delete or archive) is required"))

        log = logger.bind(operation=operation.value, task_count=len(task_ids))
        log.info("bulk_task_operation_started")

        results: list[BulkTaskResult] = []
        errors: list[BulkTaskError] = []
        blocked: list[BulkTaskError] = []

        try:
            known = await self._resolve_tasks(task_ids)
        except InfrastructureError as e:
            return Failure(
                AppError("infrastructure", f"Failed to perform bulk operation: {e!s}"),
            )
        to_process = [task_id for task_id in task_ids if task_id in known]
        errors.extend(
            BulkTaskError(id=task_id, error=NOT_FOUND_MESSAGE)
            for task_id in task_ids
            if task_id not in known
        )

        if operation is BulkTaskOperation.DELETE:
            try:
                hit_sets = await self.scanner.scan_many(to_process, DocumentKind.TASK)
            except ScanError as e:
                return Failure(
                    AppError("infrastructure", f"Failed to perform bulk operation: {e!s}"),
                )
            candidates, to_process = to_process, []
            for task_id in candidates:
                report = self.evaluator.evaluate(DocumentKind.TASK, hit_sets[task_id])
                if report.blocking:
                    blocked.append(
                        BulkTaskError(
                            id=task_id,
                            error=". ".join(report.details),
                            suggestion=report.suggestion,
                        ),
                    )
                else:
                    to_process.append(task_id)
            await self._delete(to_process, results, errors)
        else:
            await self._archive(to_process, results, errors)

        errors.extend(blocked)
        count = len(results)
        verb = f"{operation.value}d"
        message = f"Task {verb} successfully" if count == 1 else f"{count} tasks {verb} successfully"
        log.info("bulk_task_operation_completed", success_count=count, error_count=len(errors))
        return Success(
            BulkTaskResponse(
                message=message,
                results=results,
                errors=errors,
                success_count=count,
                error_count=len(errors),
            ),
        )

    async def _resolve_tasks(self, task_ids: list[str]) -> set[str]:
        """Ids among ``task_ids`` that exist and are tasks."""
        chunks = chunked(list(dict.fromkeys(task_ids)), self.delete_chunk_size)
        found = await asyncio.gather(
            *(
                self.document_store.query(
                    DocumentQuery(kind=DocumentKind.TASK, where=(Condition.is_in("_id", chunk),)),
                )
                for chunk in chunks
            ),
        )
        return {document["_id"] for documents in found for document in documents}

    async def _archive(
        self,
        task_ids: list[str],
        results: list[BulkTaskResult],
        errors: list[BulkTaskError],
    ) -> None:
        for chunk in chunked(task_ids, self.transaction_limit):
            mutations = [
                PatchMutation(document_id=task_id, set={"isArchived": True}) for task_id in chunk
            ]
            try:
                await self.document_store.commit(mutations)
            except Exception as e:  # noqa: BLE001
                logger.warning("bulk_archive_chunk_failed", size=len(chunk), error=str(e))
                errors.extend(
                    BulkTaskError(id=task_id, error=str(e) or "Failed to archive task")
                    for task_id in chunk
                )
                continue
            results.extend(BulkTaskResult(id=task_id, status="archived") for task_id in chunk)

    async def _delete(
        self,
        task_ids: list[str],
        results: list[BulkTaskResult],
        errors: list[BulkTaskError],
    ) -> None:
        for chunk in chunked(task_ids, self.delete_chunk_size):
            outcomes = await asyncio.gather(
                *(self.document_store.delete(task_id) for task_id in chunk),
                return_exceptions=True,
            )
            for task_id, outcome in zip(chunk, outcomes, strict=True):
                if isinstance(outcome, BaseException):
                    errors.append(
                        BulkTaskError(id=task_id, error=str(outcome) or "Failed to delete task"),
                    )
                elif outcome:
                    results.append(BulkTaskResult(id=task_id, status="deleted"))
                else:
                    errors.append(BulkTaskError(id=task_id, error=NOT_FOUND_MESSAGE))
