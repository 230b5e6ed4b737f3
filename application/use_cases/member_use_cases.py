from __future__ import annotations

import asyncio
import re
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog
from returns.result import Failure, Result, Success

from application.dtos.cascade_dtos import DeletionRequest
from application.dtos.errors import AppError
from application.dtos.member_dtos import (
    AssignTeamMembersRequest,
    AssignTeamMembersResponse,
    DeletionPlanResponse,
    MemberDeletionResponse,
)
from application.mappers.conflict_mappers import ConflictMapper
from application.services.chunking import chunked
from domain.exceptions import EntityNotFoundError, InfrastructureError, ScanError
from domain.value_objects.conflict_report import ConflictReport
from domain.value_objects.document_kind import ActorRole, DocumentKind
from domain.value_objects.document_query import Condition, DocumentQuery
from domain.value_objects.field_path import FieldPath
from domain.value_objects.reference import RefObject
from domain.value_objects.reference_hit import display_name

if TYPE_CHECKING:
    from application.ports.document_store import DocumentStore
    from application.sagas.cascade_orchestrator import CascadeOrchestrator

logger = structlog.get_logger()

SCAN_FAILED_MESSAGE = "Could not check references to this member. No changes were made."

TEAM_MEMBERS = FieldPath.of("members[]")


class DeleteMemberUseCase:
    """Permanently delete a team member, cleaning every reference to them first."""

    success_message = "User and all references have been removed successfully"

    def __init__(self, orchestrator: CascadeOrchestrator) -> None:
        self.orchestrator = orchestrator

    async def execute(
        self,
        member_id: str,
        actor_role: ActorRole = ActorRole.ADMIN,
    ) -> Result[MemberDeletionResponse, AppError]:
        if not member_id:
            return Failure(AppError("validation", "Missing userId"))

        request = DeletionRequest(
            target_id=member_id,
            target_kind=DocumentKind.PERSON,
            actor_role=actor_role,
        )
        try:
            outcome = await self.orchestrator.cascade(request)
        except EntityNotFoundError as e:
            logger.warning("member_not_found", member_id=member_id, error=str(e))
            return Failure(AppError("not_found", "Member not found"))
        except ScanError as e:
            logger.warning("member_reference_scan_failed", member_id=member_id, error=str(e))
            return Failure(AppError("infrastructure", SCAN_FAILED_MESSAGE))

        if isinstance(outcome, ConflictReport):
            return Failure(
                ConflictMapper.to_app_error(
                    outcome,
                    "blocked",
                    extra=ConflictMapper.pending_timesheet_counts(outcome),
                ),
            )

        if outcome.delete_conflict is not None:
            return Failure(ConflictMapper.delete_conflict_to_app_error(outcome.delete_conflict))

        if outcome.already_deleted:
            return Failure(AppError("not_found", "Member not found"))

        logger.info(
            "member_deleted",
            member_id=member_id,
            batch_failures=len(outcome.batch_failures),
        )
        return Success(
            MemberDeletionResponse(
                message=self.success_message,
                result=ConflictMapper.to_cascade_summary(outcome),
            ),
        )


class DeleteArchivedMemberUseCase(DeleteMemberUseCase):
    """Same cascade, reached from the archived-members screen."""

    success_message = "User deleted successfully"


class PlanMemberDeletionUseCase:
    """Preview what deleting a member would change, without writing anything."""

    def __init__(self, orchestrator: CascadeOrchestrator) -> None:
        self.orchestrator = orchestrator

    async def execute(
        self,
        member_id: str,
        actor_role: ActorRole = ActorRole.ADMIN,
    ) -> Result[DeletionPlanResponse, AppError]:
        request = DeletionRequest(
            target_id=member_id,
            target_kind=DocumentKind.PERSON,
            actor_role=actor_role,
        )
        try:
            outcome = await self.orchestrator.plan(request)
        except EntityNotFoundError:
            return Failure(AppError("not_found", "Member not found"))
        except ScanError as e:
            logger.warning("member_reference_scan_failed", member_id=member_id, error=str(e))
            return Failure(AppError("infrastructure", SCAN_FAILED_MESSAGE))

        if isinstance(outcome, ConflictReport):
            return Failure(
                ConflictMapper.to_app_error(
                    outcome,
                    "blocked",
                    extra=ConflictMapper.pending_timesheet_counts(outcome),
                ),
            )
        return Success(ConflictMapper.to_plan_response(outcome))


class AssignTeamMembersUseCase:
    """Add people to a manager's active team, creating the team on first use."""

    def __init__(self, document_store: DocumentStore, chunk_size: int = 50) -> None:
        self.document_store = document_store
        self.chunk_size = chunk_size

    async def execute(
        self,
        manager_id: str,
        request: AssignTeamMembersRequest,
    ) -> Result[AssignTeamMembersResponse, AppError]:
        user_ids = request.requested_ids()
        if not user_ids:
            return Failure(AppError("validation", "User ID(s) required"))

        try:
            manager = await self.document_store.get(manager_id)
            if (
                not manager
                or manager.get("_type") != DocumentKind.PERSON.value
                or manager.get("role") not in {ActorRole.MANAGER.value, ActorRole.ADMIN.value}
            ):
                return Failure(AppError("not_found", "Manager not found"))

            users, assigned_ids = await self._validate_users(user_ids)
            found_ids = {user["_id"] for user in users}
            missing = [uid for uid in user_ids if uid not in found_ids]
            if missing:
                return Failure(
                    AppError("not_found", f"Some users not found or inactive: {', '.join(missing)}"),
                )
            if assigned_ids:
                names = [display_name(user) for user in users if user["_id"] in assigned_ids]
                return Failure(
                    AppError("validation", f"Already assigned to a team: {', '.join(names)}"),
                )

            team = await self._add_to_team(manager_id, manager, user_ids)
        except InfrastructureError as e:
            logger.error("assign_team_members_failed", manager_id=manager_id, error=str(e))
            return Failure(AppError("infrastructure", "Failed to assign team member"))

        count = len(user_ids)
        logger.info("team_members_assigned", manager_id=manager_id, team_id=team.get("_id"), count=count)
        return Success(
            AssignTeamMembersResponse(
                message=f"{count} user{'s' if count > 1 else ''} assigned to team successfully",
                team=team,
                assigned_count=count,
            ),
        )

    async def _validate_users(self, user_ids: list[str]) -> tuple[list[dict[str, Any]], set[str]]:
        """Fetch assignable users and ids already on an active team, both fan-outs at once."""
        chunks = list(chunked(user_ids, self.chunk_size))
        user_queries = [
            self.document_store.query(
                DocumentQuery(
                    kind=DocumentKind.PERSON,
                    where=(
                        Condition.is_in("_id", chunk),
                        Condition.eq("isActive", True),
                        Condition.ne("isArchived", True),
                    ),
                ),
            )
            for chunk in chunks
        ]
        team_queries = [
            self.document_store.query(
                DocumentQuery(
                    kind=DocumentKind.TEAM,
                    where=(Condition.eq("isActive", True), Condition.ref(TEAM_MEMBERS.raw, chunk)),
                ),
            )
            for chunk in chunks
        ]
        results = await asyncio.gather(*user_queries, *team_queries)

        users = [user for result in results[: len(chunks)] for user in result]
        requested = set(user_ids)
        assigned = {
            ref.id
            for result in results[len(chunks) :]
            for team in result
            for ref in TEAM_MEMBERS.references_in(team)
            if ref.id in requested
        }
        return users, assigned

    async def _add_to_team(
        self,
        manager_id: str,
        manager: dict[str, Any],
        user_ids: list[str],
    ) -> dict[str, Any]:
        teams = await self.document_store.query(
            DocumentQuery(
                kind=DocumentKind.TEAM,
                where=(Condition.ref("manager", [manager_id]), Condition.eq("isActive", True)),
            ),
        )
        team = teams[0] if teams else None

        if team is not None:
            existing = {ref.id for ref in TEAM_MEMBERS.references_in(team)}
            user_ids = [uid for uid in user_ids if uid not in existing]
        members = [
            RefObject(id=uid, element_key=uuid4().hex).to_document() for uid in user_ids
        ]
        batches = list(chunked(members, self.chunk_size))

        if team is None:
            name = f"{manager.get('firstName', '')} {manager.get('lastName', '')}'s Team"
            team = await self.document_store.create(
                {
                    "_type": DocumentKind.TEAM.value,
                    "name": name,
                    "slug": {"current": _slugify(name)},
                    "manager": RefObject(id=manager_id).to_document(),
                    "members": batches[0] if batches else [],
                    "isActive": True,
                },
            )
            batches = batches[1:]

        for batch in batches:
            await self.document_store.append(team["_id"], "members", batch)

        return await self.document_store.get(team["_id"]) or team


def _slugify(name: str) -> str:
    slug = re.sub(r"[^\w\s-]", "", name.lower())
    slug = re.sub(r"\s+", "-", slug)
    return re.sub(r"-+", "-", slug)
