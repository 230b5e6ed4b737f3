from lagom import Container
from motor.motor_asyncio import AsyncIOMotorClient

from application.ports.document_store import DocumentStore
from application.sagas.cascade_orchestrator import CascadeOrchestrator
from application.services.batch_executor import BatchExecutor
from application.services.reference_scanner import ReferenceScanner
from application.use_cases.client_use_cases import ArchiveClientUseCase
from application.use_cases.member_use_cases import (
    AssignTeamMembersUseCase,
    DeleteArchivedMemberUseCase,
    DeleteMemberUseCase,
    PlanMemberDeletionUseCase,
)
from application.use_cases.project_use_cases import DeleteProjectUseCase
from application.use_cases.task_use_cases import BulkTaskOperationUseCase, DeleteTaskUseCase
from domain.services.conflict_policy import ConflictPolicyEvaluator
from infrastructure.config import Settings, settings
from infrastructure.document_stores.mongo_document_store import MongoDocumentStore


def create_container(config: Settings = settings) -> Container:
    container = Container()

    # Register MongoDB Client and Document Store
    container[AsyncIOMotorClient] = AsyncIOMotorClient(config.mongo_uri, tz_aware=True)
    container[MongoDocumentStore] = MongoDocumentStore(
        client=container[AsyncIOMotorClient],
        settings=config,
    )
    container[DocumentStore] = container[MongoDocumentStore]

    # Cascade engine
    container[ConflictPolicyEvaluator] = lambda _: ConflictPolicyEvaluator(
        sample_limit=config.conflict_sample_limit,
    )
    container[ReferenceScanner] = lambda c: ReferenceScanner(
        document_store=c[DocumentStore],
        query_chunk_size=config.query_chunk_size,
    )
    container[BatchExecutor] = lambda c: BatchExecutor(
        document_store=c[DocumentStore],
        transaction_limit=config.transaction_limit,
        delete_chunk_size=config.delete_chunk_size,
        parallel=config.parallel_stage_batches,
    )
    container[CascadeOrchestrator] = lambda c: CascadeOrchestrator(
        document_store=c[DocumentStore],
        scanner=c[ReferenceScanner],
        evaluator=c[ConflictPolicyEvaluator],
        batch_executor=c[BatchExecutor],
    )

    # Register Use Cases
    # Member Use Cases
    container[DeleteMemberUseCase] = lambda c: DeleteMemberUseCase(
        orchestrator=c[CascadeOrchestrator],
    )
    container[DeleteArchivedMemberUseCase] = lambda c: DeleteArchivedMemberUseCase(
        orchestrator=c[CascadeOrchestrator],
    )
    container[PlanMemberDeletionUseCase] = lambda c: PlanMemberDeletionUseCase(
        orchestrator=c[CascadeOrchestrator],
    )
    container[AssignTeamMembersUseCase] = lambda c: AssignTeamMembersUseCase(
        document_store=c[DocumentStore],
        chunk_size=config.query_chunk_size,
    )

    # Task Use Cases
    container[DeleteTaskUseCase] = lambda c: DeleteTaskUseCase(
        orchestrator=c[CascadeOrchestrator],
    )
    container[BulkTaskOperationUseCase] = lambda c: BulkTaskOperationUseCase(
        document_store=c[DocumentStore],
        scanner=c[ReferenceScanner],
        evaluator=c[ConflictPolicyEvaluator],
        transaction_limit=config.transaction_limit,
        delete_chunk_size=config.delete_chunk_size,
    )

    # Project and Client Use Cases
    container[DeleteProjectUseCase] = lambda c: DeleteProjectUseCase(
        orchestrator=c[CascadeOrchestrator],
    )
    container[ArchiveClientUseCase] = lambda c: ArchiveClientUseCase(
        orchestrator=c[CascadeOrchestrator],
        document_store=c[DocumentStore],
    )

    return container
