"""Shared test fixtures and configuration."""

from __future__ import annotations

import pytest

from application.sagas.cascade_orchestrator import CascadeOrchestrator
from application.services.batch_executor import BatchExecutor
from application.services.reference_scanner import ReferenceScanner
from domain.services.conflict_policy import ConflictPolicyEvaluator
from tests.mocks import (
    InMemoryDocumentStore,
    assignment,
    entry,
    person,
    project,
    ref,
    task,
    timesheet,
)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    """An empty in-memory document store."""
    return InMemoryDocumentStore()


@pytest.fixture
def make_orchestrator():  # type: ignore[no-untyped-def]
    """Build a fully wired CascadeOrchestrator over a given store."""

    def _make(document_store: InMemoryDocumentStore, **executor_kwargs: object) -> CascadeOrchestrator:
        return CascadeOrchestrator(
            document_store=document_store,
            scanner=ReferenceScanner(document_store),
            evaluator=ConflictPolicyEvaluator(),
            batch_executor=BatchExecutor(document_store, **executor_kwargs),  # type: ignore[arg-type]
        )

    return _make


@pytest.fixture
def approved_member_store() -> InMemoryDocumentStore:
    """Member u1 with two approved timesheets, assigned on p1 and pinned by u2.

    u1 also approved u3's timesheet, manages team1 and created report r1.
    """
    return InMemoryDocumentStore(
        [
            person("u1", "Ann", "Lee", role="manager"),
            person("u2", "Bob", "Ray", pinnedBy=[ref("u1", key=True), ref("u3", key=True)]),
            person("u3", "Cid", "Moe"),
            timesheet("ts1", "u1", "approved", [entry("t1", "p1")], approved_by="u2"),
            timesheet("ts2", "u1", "approved", [entry("t1", "p1")], week_start="2024-01-08"),
            timesheet("ts3", "u3", "approved", [entry("t1", "p1")], approved_by="u1"),
            project(
                "p1",
                "Apollo",
                assignedUsers=[assignment("u1"), assignment("u3")],
                projectManager=ref("u1"),
                tasks=[ref("t1", key=True)],
            ),
            task("t1", "Design"),
            {
                "_id": "team1",
                "_type": "team",
                "name": "Ann Lee's Team",
                "manager": ref("u1"),
                "members": [ref("u2", key=True), ref("u3", key=True)],
                "isActive": True,
            },
            {
                "_id": "team2",
                "_type": "team",
                "name": "Other Team",
                "manager": ref("u3"),
                "members": [ref("u1", key=True)],
                "isActive": True,
            },
            {
                "_id": "r1",
                "_type": "report",
                "name": "Weekly hours",
                "createdBy": ref("u1"),
                "filters": {"users": [ref("u1", key=True), ref("u2", key=True)], "range": "week"},
            },
        ],
    )


@pytest.fixture
def pending_member_store() -> InMemoryDocumentStore:
    """Member u1 with one unsubmitted and one submitted timesheet holding entries."""
    return InMemoryDocumentStore(
        [
            person("u1", "Ann", "Lee"),
            timesheet("ts1", "u1", "unsubmitted", [entry("t1", "p1")]),
            timesheet("ts2", "u1", "submitted", [entry("t1", "p1")], week_start="2024-01-08"),
            timesheet("ts3", "u1", "unsubmitted", [], week_start="2024-01-15"),
            project("p1", "Apollo", assignedUsers=[assignment("u1")]),
        ],
    )
