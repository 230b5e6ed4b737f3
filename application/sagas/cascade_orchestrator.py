"""Coordinates scan → policy → cleanup stages → final delete for one target."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import TYPE_CHECKING, Any

import structlog

from application.dtos.cascade_dtos import (
    BatchFailure,
    BatchOutcome,
    CascadeResult,
    CascadeState,
    DeleteConflict,
    DeletionPlan,
    PlannedStage,
    StageOutcome,
)
from domain.exceptions import EntityNotFoundError, ReferenceConflictError
from domain.services.reference_registry import OnDelete, cleanup_stages_for
from domain.value_objects.document_kind import DocumentKind
from domain.value_objects.mutation import DeleteMutation, Mutation, PatchMutation
from domain.value_objects.reference_hit import display_name

if TYPE_CHECKING:
    from application.dtos.cascade_dtos import DeletionRequest
    from application.ports.document_store import DocumentStore
    from application.services.batch_executor import BatchExecutor
    from application.services.reference_scanner import ReferenceScanner
    from domain.services.conflict_policy import ConflictPolicyEvaluator
    from domain.services.reference_registry import CleanupStage
    from domain.value_objects.conflict_report import ConflictReport
    from domain.value_objects.reference_hit import ReferenceHitSet

logger = structlog.get_logger()

DIAGNOSTIC_LOOKUP_LIMIT = 5

TIMESHEET_HISTORY_DETAILS = (
    "User has timesheet entries that are preserved for budget calculations. "
    "Users with timesheet data cannot be deleted."
)
TIMESHEET_HISTORY_SUGGESTION = (
    "Timesheet data is preserved for historical budget calculations. "
    "Archive the user instead of deleting it."
)
UNKNOWN_REFERENCE_SUGGESTION = (
    "The document may still be referenced by other documents that could not be cleaned up "
    "automatically. Remove those references and try again."
)
PARTIAL_CLEANUP_NOTICE = (
    " Some references were already removed before the delete was refused; "
    "retry the whole operation once the remaining references are resolved."
)


class CascadeOrchestrator:
    """Run one cascade deletion end to end.

    States: ``scanning → evaluating → blocked`` or
    ``scanning → evaluating → cleaning → deleting → done | delete_conflict``.
    Only people go through ``cleaning``; tasks, projects and clients are
    deleted straight away once the policy lets them through.

    Nothing is written before the policy decision. After it, cleanup is
    best effort: failed batches are reported on the result and never stop the
    following stages or the final delete.
    """

    def __init__(
        self,
        document_store: DocumentStore,
        scanner: ReferenceScanner,
        evaluator: ConflictPolicyEvaluator,
        batch_executor: BatchExecutor,
    ) -> None:
        self.document_store = document_store
        self.scanner = scanner
        self.evaluator = evaluator
        self.batch_executor = batch_executor

    async def load_target(self, target_id: str, target_kind: DocumentKind) -> dict[str, Any]:
        document = await self.document_store.get(target_id)
        if document is None or document.get("_type") != target_kind.value:
            msg = f"{target_kind.value.capitalize()} {target_id} not found"
            raise EntityNotFoundError(msg)
        return document

    async def assess(
        self,
        target_id: str,
        target_kind: DocumentKind,
    ) -> tuple[dict[str, Any], ReferenceHitSet, ConflictReport]:
        """Load the target, scan its references and evaluate the policy. Never writes."""
        target = await self.load_target(target_id, target_kind)
        hit_set = await self.scanner.scan(target_id, target_kind)
        report = self.evaluator.evaluate(target_kind, hit_set, display_name(target))
        return target, hit_set, report

    async def cascade(self, request: DeletionRequest) -> CascadeResult | ConflictReport:
        log = logger.bind(
            target_id=request.target_id,
            target_kind=request.target_kind.value,
            actor_role=request.actor_role.value,
        )
        states = [CascadeState.SCANNING]
        log.info("cascade_started")

        _, hit_set, report = await self.assess(request.target_id, request.target_kind)
        states.append(CascadeState.EVALUATING)

        if report.blocking:
            states.append(CascadeState.BLOCKED)
            log.info(
                "cascade_blocked",
                states=[state.value for state in states],
                reasons=[reason.category for reason in report.reasons],
            )
            return report

        result = CascadeResult(
            target_id=request.target_id,
            target_kind=request.target_kind,
            states=states,
        )

        stages = cleanup_stages_for(request.target_kind)
        if stages:
            result.states.append(CascadeState.CLEANING)
            await self._run_stages(stages, hit_set, result)

        result.states.append(CascadeState.DELETING)
        try:
            deleted = await self.document_store.delete(request.target_id)
        except ReferenceConflictError as e:
            result.delete_conflict = await self._diagnose(
                e,
                request.target_kind,
                partial_cleanup=any(s.outcome.committed_count for s in result.stages),
            )
            result.states.append(CascadeState.DELETE_CONFLICT)
            log.warning(
                "cascade_delete_conflict",
                referencing_ids=e.referencing_ids[:DIAGNOSTIC_LOOKUP_LIMIT],
                batch_failures=len(result.batch_failures),
            )
            return result

        if deleted:
            result.deleted_entity_id = request.target_id
        else:
            result.already_deleted = True
        result.states.append(CascadeState.DONE)
        log.info(
            "cascade_completed",
            already_deleted=result.already_deleted,
            removed_references={k.value: v for k, v in result.removed_references_by_kind.items()},
            batch_failures=len(result.batch_failures),
        )
        return result

    async def plan(self, request: DeletionRequest) -> DeletionPlan | ConflictReport:
        """Dry run: the blocking report, or the stages a cascade would execute."""
        target, hit_set, report = await self.assess(request.target_id, request.target_kind)
        if report.blocking:
            return report

        planned = []
        for stage in cleanup_stages_for(request.target_kind):
            mutations = self.build_stage_mutations(stage, hit_set)
            planned.append(
                PlannedStage(
                    name=stage.name,
                    holder_kind=stage.holder_kind,
                    operation="delete" if stage.action is OnDelete.DELETE_HOLDER else "patch",
                    mutation_count=len(mutations),
                    document_ids=[m.document_id for m in mutations],
                ),
            )
        return DeletionPlan(
            target_id=request.target_id,
            target_kind=request.target_kind,
            target_name=display_name(target),
            stages=planned,
        )

    @staticmethod
    def build_stage_mutations(stage: CleanupStage, hit_set: ReferenceHitSet) -> list[Mutation]:
        """Mutations removing the target's references held by one stage's holders."""
        labels = {edge.path_label for edge in stage.edges}
        holders = [
            hit for hit in hit_set.of_kind(stage.holder_kind) if labels.intersection(hit.field_paths)
        ]
        if stage.action is OnDelete.DELETE_HOLDER:
            return [DeleteMutation(document_id=hit.holder_id) for hit in holders]

        mutations: list[Mutation] = []
        for hit in holders:
            set_fields: dict[str, Any] = {}
            unset_fields: list[str] = []
            for edge in stage.edges:
                if edge.field_path is None or edge.path_label not in hit.field_paths:
                    continue
                to_set, to_unset = edge.field_path.detach(hit.document, hit_set.target_id)
                set_fields.update(to_set)
                unset_fields.extend(to_unset)
            patch = PatchMutation(
                document_id=hit.holder_id,
                set=set_fields,
                unset=tuple(unset_fields),
            )
            if not patch.is_empty:
                mutations.append(patch)
        return mutations

    async def _run_stages(
        self,
        stages: tuple[CleanupStage, ...],
        hit_set: ReferenceHitSet,
        result: CascadeResult,
    ) -> None:
        removed: dict[DocumentKind, int] = defaultdict(int)
        # Stages are strictly ordered: later ones assume the person's own
        # timesheets are already gone.
        for stage in stages:
            mutations = self.build_stage_mutations(stage, hit_set)
            if mutations:
                outcome = await self.batch_executor.execute(mutations)
            else:
                outcome = BatchOutcome()
            result.stages.append(
                StageOutcome(
                    name=stage.name,
                    holder_kind=stage.holder_kind,
                    planned_count=len(mutations),
                    outcome=outcome,
                ),
            )
            removed[stage.holder_kind] += outcome.committed_count
            result.batch_failures.extend(
                BatchFailure(stage=stage.name, batch_index=index)
                for index in outcome.failed_chunk_indices
            )
            logger.info(
                "cascade_stage_completed",
                target_id=hit_set.target_id,
                stage=stage.name,
                planned=len(mutations),
                committed=outcome.committed_count,
                failed_chunks=outcome.failed_chunk_indices,
            )
        result.removed_references_by_kind = {k: v for k, v in removed.items() if v}

    async def _lookup_kind(self, document_id: str) -> str:
        try:
            document = await self.document_store.get(document_id)
        except Exception as e:  # noqa: BLE001
            logger.warning("reference_kind_lookup_failed", document_id=document_id, error=str(e))
            return "unknown"
        if not document:
            return "unknown"
        return str(document.get("_type") or "unknown")

    async def _diagnose(
        self,
        error: ReferenceConflictError,
        target_kind: DocumentKind,
        *,
        partial_cleanup: bool,
    ) -> DeleteConflict:
        """Turn a store reference conflict into something a user can act on."""
        referencing_ids = error.referencing_ids
        kinds = list(
            await asyncio.gather(
                *(self._lookup_kind(ref_id) for ref_id in referencing_ids[:DIAGNOSTIC_LOOKUP_LIMIT]),
            ),
        )
        message = str(error) or "Cannot delete due to existing references"
        has_timesheets = (
            "timesheet" in message.lower()
            or any("timesheet" in ref_id for ref_id in referencing_ids)
            or DocumentKind.TIMESHEET.value in kinds
        )

        if has_timesheets and target_kind is DocumentKind.PERSON:
            details = TIMESHEET_HISTORY_DETAILS
            suggestion = TIMESHEET_HISTORY_SUGGESTION
        else:
            known = [kind for kind in kinds if kind != "unknown"]
            details = message
            if referencing_ids:
                details += f" (Referenced by: {', '.join(known) or 'unknown documents'})"
            suggestion = UNKNOWN_REFERENCE_SUGGESTION
        if partial_cleanup:
            suggestion += PARTIAL_CLEANUP_NOTICE

        label = "user" if target_kind is DocumentKind.PERSON else target_kind.value
        return DeleteConflict(
            has_timesheet_history=has_timesheets,
            error=f"Cannot delete {label}",
            details=details,
            suggestion=suggestion,
            referencing_ids=referencing_ids,
            referencing_kinds=kinds,
            partial_cleanup=partial_cleanup,
        )
