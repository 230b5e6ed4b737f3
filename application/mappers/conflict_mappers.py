from typing import Any

from application.dtos.cascade_dtos import CascadeResult, DeleteConflict, DeletionPlan
from application.dtos.errors import AppError
from application.dtos.member_dtos import (
    CascadeSummary,
    DeletionPlanResponse,
    PlannedStageResponse,
    StageSummary,
)
from domain.value_objects.conflict_report import ConflictReport


class ConflictMapper:
    @staticmethod
    def to_app_error(
        report: ConflictReport,
        category: str,
        extra: dict[str, Any] | None = None,
    ) -> AppError:
        """Map a blocking ConflictReport to the ``{error, details, suggestion}`` body.

        Args:
            report: The blocking report returned by the policy evaluator
            category: AppError category deciding the HTTP status
            extra: Additional top-level fields for the response body

        Returns:
            AppError: The mapped application error

        """
        return AppError(
            category,
            report.error or "Cannot delete because the document is in use",
            details=report.details,
            suggestion=report.suggestion,
            extra=extra,
        )

    @staticmethod
    def referenced_in(report: ConflictReport) -> dict[str, Any]:
        referenced: dict[str, Any] = {"timeEntryCount": 0}
        for reason in report.reasons:
            if reason.category == "time_entries":
                referenced["timeEntryCount"] = reason.count
            else:
                referenced[reason.category] = reason.sample_names
        return referenced

    @staticmethod
    def pending_timesheet_counts(report: ConflictReport) -> dict[str, int]:
        unsubmitted = report.count_for("unsubmitted_timesheets")
        submitted = report.count_for("submitted_timesheets")
        return {
            "unsubmittedCount": unsubmitted,
            "submittedCount": submitted,
            "total": unsubmitted + submitted,
        }

    @staticmethod
    def delete_conflict_to_app_error(conflict: DeleteConflict) -> AppError:
        extra = {"referencingIds": conflict.referencing_ids} if conflict.referencing_ids else None
        return AppError(
            "conflict",
            conflict.error,
            details=[conflict.details],
            suggestion=conflict.suggestion,
            extra=extra,
        )

    @staticmethod
    def to_cascade_summary(result: CascadeResult) -> CascadeSummary:
        return CascadeSummary(
            removed_references={
                kind.value: count for kind, count in result.removed_references_by_kind.items()
            },
            stages=[
                StageSummary(
                    name=stage.name,
                    holder_kind=stage.holder_kind.value,
                    planned=stage.planned_count,
                    committed=stage.outcome.committed_count,
                    failed_batches=list(stage.outcome.failed_chunk_indices),
                )
                for stage in result.stages
            ],
            batch_failures=len(result.batch_failures),
            states=[state.value for state in result.states],
        )

    @staticmethod
    def to_plan_response(plan: DeletionPlan) -> DeletionPlanResponse:
        return DeletionPlanResponse(
            member_id=plan.target_id,
            member_name=plan.target_name,
            stages=[
                PlannedStageResponse(
                    name=stage.name,
                    holder_kind=stage.holder_kind.value,
                    operation=stage.operation,
                    mutation_count=stage.mutation_count,
                    document_ids=stage.document_ids,
                )
                for stage in plan.stages
            ],
            total_mutations=plan.total_mutations,
        )
