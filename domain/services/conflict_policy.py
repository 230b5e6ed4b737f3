"""Domain service deciding whether a scanned target may be deleted."""

from __future__ import annotations

from typing import TYPE_CHECKING

from domain.services.reference_registry import (
    PROJECT_CLIENT,
    PROJECT_TASKS,
    TASK_ANY_REFERENCE,
    TIMESHEET_ENTRY_PROJECT,
    TIMESHEET_ENTRY_TASK,
    TIMESHEET_USER,
)
from domain.value_objects.conflict_report import ConflictReason, ConflictReport
from domain.value_objects.document_kind import DocumentKind, TimesheetStatus

if TYPE_CHECKING:
    from domain.services.reference_registry import ReferenceEdge
    from domain.value_objects.reference_hit import ReferenceHit, ReferenceHitSet

DEFAULT_SAMPLE_LIMIT = 5

PERSON_SUGGESTION = (
    "Ask the member to submit their timesheets and have them approved, "
    "or archive the member instead."
)
TASK_SUGGESTION = "Consider archiving this task instead of deleting it."
PROJECT_SUGGESTION = "Consider archiving this project instead of deleting it."
CLIENT_SUGGESTION = "Complete or archive the client's active projects first."


def _plural(count: int, singular: str, plural: str | None = None) -> str:
    return singular if count == 1 else (plural or f"{singular}s")


def _entries(count: int) -> str:
    return _plural(count, "time entry", "time entries")


class ConflictPolicyEvaluator:
    """Apply the per-kind deletion rules to a :class:`ReferenceHitSet`.

    People get surgical cleanup, so only outstanding (unsubmitted or submitted)
    timesheets with entries block them. Tasks, projects and clients are refused
    outright whenever anything still uses them.
    """

    def __init__(self, sample_limit: int = DEFAULT_SAMPLE_LIMIT) -> None:
        self.sample_limit = sample_limit

    def evaluate(
        self,
        target_kind: DocumentKind,
        hit_set: ReferenceHitSet,
        target_name: str | None = None,
    ) -> ConflictReport:
        name = target_name or hit_set.target_id
        if target_kind is DocumentKind.PERSON:
            return self._evaluate_person(hit_set)
        if target_kind is DocumentKind.TASK:
            return self._evaluate_task(hit_set, name)
        if target_kind is DocumentKind.PROJECT:
            return self._evaluate_project(hit_set, name)
        if target_kind is DocumentKind.CLIENT:
            return self._evaluate_client(hit_set)
        msg = f"No deletion policy for {target_kind.value} documents"
        raise ValueError(msg)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _samples(self, hits: list[ReferenceHit]) -> list[str]:
        return [hit.name for hit in hits[: self.sample_limit]]

    def _sample_text(self, hits: list[ReferenceHit]) -> str:
        text = ", ".join(self._samples(hits))
        extra = len(hits) - self.sample_limit
        if extra > 0:
            text += f" and {extra} more"
        return text

    @staticmethod
    def _hits(hit_set: ReferenceHitSet, edge: ReferenceEdge) -> list[ReferenceHit]:
        return hit_set.with_field(edge.holder_kind, edge.path_label)

    @staticmethod
    def _is_approved(hit: ReferenceHit) -> bool:
        return hit.document.get("status") == TimesheetStatus.APPROVED.value

    def _entry_reason(
        self,
        hit_set: ReferenceHitSet,
        edge: ReferenceEdge,
        category: str,
        message_prefix: str,
    ) -> ConflictReason | None:
        timesheets = [hit for hit in self._hits(hit_set, edge) if not self._is_approved(hit)]
        count = sum(
            edge.field_path.count(hit.document, {hit_set.target_id}) for hit in timesheets
        )
        if count == 0:
            return None
        return ConflictReason(
            kind=DocumentKind.TIMESHEET,
            category=category,
            count=count,
            sample_names=self._samples(timesheets),
            message=f"{message_prefix} {count} {_entries(count)}",
        )

    def _holder_reason(
        self,
        hits: list[ReferenceHit],
        kind: DocumentKind,
        category: str,
    ) -> ConflictReason | None:
        if not hits:
            return None
        count = len(hits)
        return ConflictReason(
            kind=kind,
            category=category,
            count=count,
            sample_names=self._samples(hits),
            message=f"Referenced in {count} {kind.plural(count)}: {self._sample_text(hits)}",
        )

    # ------------------------------------------------------------------
    # Per-kind rules
    # ------------------------------------------------------------------

    def _evaluate_person(self, hit_set: ReferenceHitSet) -> ConflictReport:
        pending = [
            hit
            for hit in self._hits(hit_set, TIMESHEET_USER)
            if hit.document.get("status") in {s.value for s in TimesheetStatus.pending()}
            and hit.document.get("entries")
        ]
        reasons = []
        for status, category, label in (
            (TimesheetStatus.UNSUBMITTED, "unsubmitted_timesheets", "unsubmitted"),
            (TimesheetStatus.SUBMITTED, "submitted_timesheets", "submitted"),
        ):
            matching = [hit for hit in pending if hit.document.get("status") == status.value]
            if not matching:
                continue
            count = len(matching)
            message = f"{count} {label} {_plural(count, 'timesheet')}"
            if status is TimesheetStatus.SUBMITTED:
                message += " awaiting approval"
            reasons.append(
                ConflictReason(
                    kind=DocumentKind.TIMESHEET,
                    category=category,
                    count=count,
                    sample_names=self._samples(matching),
                    message=message,
                ),
            )

        if not reasons:
            return ConflictReport.clear(hit_set.target_id, DocumentKind.PERSON)
        return ConflictReport(
            target_id=hit_set.target_id,
            target_kind=DocumentKind.PERSON,
            blocking=True,
            error="Cannot delete member with unsubmitted or pending timesheets",
            reasons=reasons,
            suggestion=PERSON_SUGGESTION,
        )

    def _evaluate_task(self, hit_set: ReferenceHitSet, name: str) -> ConflictReport:
        reasons = [
            self._holder_reason(
                self._hits(hit_set, PROJECT_TASKS),
                DocumentKind.PROJECT,
                "projects",
            ),
            self._entry_reason(hit_set, TIMESHEET_ENTRY_TASK, "time_entries", "Used in"),
        ]
        return self._refusal(
            hit_set,
            DocumentKind.TASK,
            [reason for reason in reasons if reason],
            f'Cannot delete task "{name}" because it is currently in use.',
            TASK_SUGGESTION,
        )

    def _evaluate_project(self, hit_set: ReferenceHitSet, name: str) -> ConflictReport:
        entry_reason = self._entry_reason(
            hit_set,
            TIMESHEET_ENTRY_PROJECT,
            "time_entries",
            "Used in",
        )
        if entry_reason:
            entry_reason = entry_reason.model_copy(
                update={
                    "message": f"Used in {entry_reason.count} pending/unsubmitted "
                    f"{_entries(entry_reason.count)}",
                },
            )
        reasons = [
            entry_reason,
            self._holder_reason(
                self._hits(hit_set, TASK_ANY_REFERENCE),
                DocumentKind.TASK,
                "tasks",
            ),
        ]
        return self._refusal(
            hit_set,
            DocumentKind.PROJECT,
            [reason for reason in reasons if reason],
            f'Cannot delete project "{name}" because it is currently in use.',
            PROJECT_SUGGESTION,
        )

    def _evaluate_client(self, hit_set: ReferenceHitSet) -> ConflictReport:
        active = [
            hit for hit in self._hits(hit_set, PROJECT_CLIENT) if hit.document.get("isActive") is True
        ]
        if not active:
            return ConflictReport.clear(hit_set.target_id, DocumentKind.CLIENT)
        count = len(active)
        noun = _plural(count, "project")
        reason = ConflictReason(
            kind=DocumentKind.PROJECT,
            category="active_projects",
            count=count,
            sample_names=self._samples(active),
            message=f"{count} active {noun} must be completed or archived first",
        )
        return ConflictReport(
            target_id=hit_set.target_id,
            target_kind=DocumentKind.CLIENT,
            blocking=True,
            error=f"Cannot archive client. {count} active {noun} must be completed "
            "or archived first.",
            reasons=[reason],
            suggestion=CLIENT_SUGGESTION,
        )

    @staticmethod
    def _refusal(
        hit_set: ReferenceHitSet,
        kind: DocumentKind,
        reasons: list[ConflictReason],
        error: str,
        suggestion: str,
    ) -> ConflictReport:
        if not reasons:
            return ConflictReport.clear(hit_set.target_id, kind)
        return ConflictReport(
            target_id=hit_set.target_id,
            target_kind=kind,
            blocking=True,
            error=error,
            reasons=reasons,
            suggestion=suggestion,
        )
