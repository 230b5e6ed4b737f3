"""Tests for domain services."""

from __future__ import annotations

from typing import Any

import pytest

from domain.services.conflict_policy import (
    CLIENT_SUGGESTION,
    PERSON_SUGGESTION,
    TASK_SUGGESTION,
    ConflictPolicyEvaluator,
)
from domain.services.reference_registry import (
    PERSON_CLEANUP_STAGES,
    OnDelete,
    cleanup_stages_for,
    edges_for,
)
from domain.value_objects.document_kind import DocumentKind
from domain.value_objects.reference_hit import ReferenceHit, ReferenceHitSet, display_name
from tests.mocks import entry, person, project, ref, task, timesheet


def _hit(kind: DocumentKind, document: dict[str, Any], *paths: str) -> ReferenceHit:
    return ReferenceHit(
        holder_id=document["_id"],
        holder_kind=kind,
        name=display_name(document),
        field_paths=paths,
        document=document,
    )


def _hit_set(
    target_id: str,
    target_kind: DocumentKind,
    *hits: ReferenceHit,
) -> ReferenceHitSet:
    grouped: dict[DocumentKind, list[ReferenceHit]] = {}
    for hit in hits:
        grouped.setdefault(hit.holder_kind, []).append(hit)
    return ReferenceHitSet(target_id=target_id, target_kind=target_kind, hits=grouped)


class TestReferenceRegistry:
    """Test the static reference registry."""

    def test_every_deletable_kind_has_edges(self) -> None:
        for kind in (DocumentKind.PERSON, DocumentKind.TASK, DocumentKind.PROJECT, DocumentKind.CLIENT):
            assert edges_for(kind)
            assert all(edge.target_kind is kind for edge in edges_for(kind))

    def test_unsupported_kind_raises(self) -> None:
        with pytest.raises(ValueError, match="not supported"):
            edges_for(DocumentKind.TEAM)

    def test_person_stages_run_in_fixed_order(self) -> None:
        assert [stage.name for stage in PERSON_CLEANUP_STAGES] == [
            "clear_approved_by",
            "delete_own_timesheets",
            "detach_from_projects",
            "detach_from_teams",
            "unpin_from_people",
            "detach_from_reports",
        ]
        assert cleanup_stages_for(DocumentKind.PERSON) == PERSON_CLEANUP_STAGES

    def test_only_people_get_cleanup_stages(self) -> None:
        assert cleanup_stages_for(DocumentKind.TASK) == ()
        assert cleanup_stages_for(DocumentKind.CLIENT) == ()

    def test_only_own_timesheets_are_deleted(self) -> None:
        deleting = [s for s in PERSON_CLEANUP_STAGES if s.action is OnDelete.DELETE_HOLDER]
        assert len(deleting) == 1
        assert deleting[0].holder_kind is DocumentKind.TIMESHEET
        assert [edge.path_label for edge in deleting[0].edges] == ["user"]

    def test_timesheet_entry_edges_ignore_approved_timesheets(self) -> None:
        edge = next(e for e in edges_for(DocumentKind.TASK) if e.holder_kind is DocumentKind.TIMESHEET)
        assert [c.value for c in edge.scope] == ["approved"]


class TestConflictPolicyEvaluator:
    """Test ConflictPolicyEvaluator domain service."""

    def test_person_with_pending_timesheets_is_blocked(self) -> None:
        hit_set = _hit_set(
            "u1",
            DocumentKind.PERSON,
            _hit(DocumentKind.TIMESHEET, timesheet("ts1", "u1", "unsubmitted", [entry("t1")]), "user"),
            _hit(DocumentKind.TIMESHEET, timesheet("ts2", "u1", "submitted", [entry("t1")]), "user"),
            _hit(DocumentKind.TIMESHEET, timesheet("ts3", "u1", "submitted", [entry("t1")]), "user"),
        )

        report = ConflictPolicyEvaluator().evaluate(DocumentKind.PERSON, hit_set)

        assert report.blocking is True
        assert report.error == "Cannot delete member with unsubmitted or pending timesheets"
        assert report.details == [
            "1 unsubmitted timesheet",
            "2 submitted timesheets awaiting approval",
        ]
        assert report.count_for("submitted_timesheets") == 2
        assert report.suggestion == PERSON_SUGGESTION

    def test_person_with_empty_or_approved_timesheets_is_clear(self) -> None:
        hit_set = _hit_set(
            "u1",
            DocumentKind.PERSON,
            _hit(DocumentKind.TIMESHEET, timesheet("ts1", "u1", "unsubmitted", []), "user"),
            _hit(DocumentKind.TIMESHEET, timesheet("ts2", "u1", "approved", [entry("t1")]), "user"),
            _hit(DocumentKind.TIMESHEET, timesheet("ts3", "u2", "submitted", [entry("t1")], approved_by="u1"), "approvedBy"),
        )

        report = ConflictPolicyEvaluator().evaluate(DocumentKind.PERSON, hit_set)

        assert report.blocking is False
        assert report.reasons == []

    def test_task_referenced_by_project(self) -> None:
        hit_set = _hit_set(
            "t1",
            DocumentKind.TASK,
            _hit(DocumentKind.PROJECT, project("p1", "p1", tasks=[ref("t1")]), "tasks[]"),
        )

        report = ConflictPolicyEvaluator().evaluate(DocumentKind.TASK, hit_set, "Design")

        assert report.blocking is True
        assert report.details == ["Referenced in 1 project: p1"]
        assert report.error == 'Cannot delete task "Design" because it is currently in use.'
        assert report.suggestion == TASK_SUGGESTION

    def test_task_time_entries_are_counted_per_entry(self) -> None:
        sheet = timesheet("ts1", "u1", "submitted", [entry("t1"), entry("t1"), entry("t2")])
        hit_set = _hit_set("t1", DocumentKind.TASK, _hit(DocumentKind.TIMESHEET, sheet, "entries[].task"))

        report = ConflictPolicyEvaluator().evaluate(DocumentKind.TASK, hit_set)

        assert report.details == ["Used in 2 time entries"]

    def test_project_lists_five_tasks_and_more(self) -> None:
        tasks = [
            _hit(DocumentKind.TASK, task(f"t{i}", f"Task {i}", project=ref("p1")), "*")
            for i in range(1, 8)
        ]
        sheet = timesheet("ts1", "u1", "unsubmitted", [entry("t1", "p1")])
        hit_set = _hit_set(
            "p1",
            DocumentKind.PROJECT,
            _hit(DocumentKind.TIMESHEET, sheet, "entries[].project"),
            *tasks,
        )

        report = ConflictPolicyEvaluator().evaluate(DocumentKind.PROJECT, hit_set, "Apollo")

        assert report.details == [
            "Used in 1 pending/unsubmitted time entry",
            "Referenced in 7 tasks: Task 1, Task 2, Task 3, Task 4, Task 5 and 2 more",
        ]
        assert report.count_for("tasks") == 7

    def test_client_with_active_projects_is_blocked(self) -> None:
        hit_set = _hit_set(
            "c1",
            DocumentKind.CLIENT,
            _hit(DocumentKind.PROJECT, project("p1", "Apollo", client=ref("c1")), "client"),
            _hit(DocumentKind.PROJECT, project("p2", "Gemini", client=ref("c1"), isActive=False), "client"),
        )

        report = ConflictPolicyEvaluator().evaluate(DocumentKind.CLIENT, hit_set)

        assert report.blocking is True
        assert report.count_for("active_projects") == 1
        assert report.error == (
            "Cannot archive client. 1 active project must be completed or archived first."
        )
        assert report.suggestion == CLIENT_SUGGESTION

    def test_client_with_only_inactive_projects_is_clear(self) -> None:
        hit_set = _hit_set(
            "c1",
            DocumentKind.CLIENT,
            _hit(DocumentKind.PROJECT, project("p2", "Gemini", client=ref("c1"), isActive=False), "client"),
        )

        assert ConflictPolicyEvaluator().evaluate(DocumentKind.CLIENT, hit_set).blocking is False

    def test_sample_limit_is_configurable(self) -> None:
        projects = [
            _hit(DocumentKind.PROJECT, project(f"p{i}", f"P{i}", tasks=[ref("t1")]), "tasks[]")
            for i in range(3)
        ]
        hit_set = _hit_set("t1", DocumentKind.TASK, *projects)

        report = ConflictPolicyEvaluator(sample_limit=2).evaluate(DocumentKind.TASK, hit_set)

        assert report.details == ["Referenced in 3 projects: P0, P1 and 1 more"]
        assert report.reasons[0].sample_names == ["P0", "P1"]

    def test_unsupported_kind_raises(self) -> None:
        hit_set = _hit_set("r1", DocumentKind.REPORT)
        with pytest.raises(ValueError, match="No deletion policy"):
            ConflictPolicyEvaluator().evaluate(DocumentKind.REPORT, hit_set)

    def test_person_unrelated_holders_do_not_block(self) -> None:
        hit_set = _hit_set(
            "u1",
            DocumentKind.PERSON,
            _hit(DocumentKind.PERSON, person("u2", "Bob", "Ray", pinnedBy=[ref("u1")]), "pinnedBy[]"),
        )
        assert ConflictPolicyEvaluator().evaluate(DocumentKind.PERSON, hit_set).blocking is False
