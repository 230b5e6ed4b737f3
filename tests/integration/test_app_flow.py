"""End-to-end flows: HTTP routes over real use cases and an in-memory store."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

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
from interfaces.api.main import app
from interfaces.dependencies import get_container
from tests.mocks import InMemoryDocumentStore, person, project, ref, task

ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "admin"}


class WiredContainer:
    """The production object graph over an in-memory store."""

    def __init__(self, store: InMemoryDocumentStore) -> None:
        scanner = ReferenceScanner(store)
        evaluator = ConflictPolicyEvaluator()
        orchestrator = CascadeOrchestrator(store, scanner, evaluator, BatchExecutor(store))
        self._mapping: dict[type, object] = {
            DeleteMemberUseCase: DeleteMemberUseCase(orchestrator),
            DeleteArchivedMemberUseCase: DeleteArchivedMemberUseCase(orchestrator),
            PlanMemberDeletionUseCase: PlanMemberDeletionUseCase(orchestrator),
            AssignTeamMembersUseCase: AssignTeamMembersUseCase(store),
            DeleteTaskUseCase: DeleteTaskUseCase(orchestrator),
            BulkTaskOperationUseCase: BulkTaskOperationUseCase(store, scanner, evaluator),
            DeleteProjectUseCase: DeleteProjectUseCase(orchestrator),
            ArchiveClientUseCase: ArchiveClientUseCase(orchestrator, store),
        }

    def __getitem__(self, key: type) -> object:
        return self._mapping[key]


@pytest.fixture
def wire():  # type: ignore[no-untyped-def]
    def _wire(store: InMemoryDocumentStore) -> TestClient:
        container = WiredContainer(store)
        app.dependency_overrides[get_container] = lambda: container
        return TestClient(app)

    yield _wire
    app.dependency_overrides.clear()


def test_member_cascade_over_http(wire, approved_member_store: InMemoryDocumentStore) -> None:
    client = wire(approved_member_store)

    plan = client.get("/team/members/u1/deletion-plan", headers=ADMIN)
    assert plan.status_code == 200
    assert plan.json()["totalMutations"] == 8
    assert approved_member_store.write_count == 0

    response = client.delete("/team/members/u1", headers=ADMIN)

    assert response.status_code == 200
    payload = response.json()
    assert payload["message"] == "User and all references have been removed successfully"
    assert payload["result"]["removedReferences"]["timesheet"] == 3
    assert payload["result"]["states"][-1] == "done"
    assert "u1" not in approved_member_store.documents

    again = client.delete("/team/members/u1", headers=ADMIN)
    assert again.status_code == 404


def test_pending_member_is_blocked_over_http(wire, pending_member_store: InMemoryDocumentStore) -> None:
    client = wire(pending_member_store)

    response = client.delete("/team/archived/u1/delete", headers=ADMIN)

    assert response.status_code == 400
    body = response.json()
    assert body["unsubmittedCount"] == 1
    assert body["submittedCount"] == 1
    assert body["total"] == 2
    assert len(body["details"]) == 2
    assert pending_member_store.write_count == 0


def test_task_referenced_by_project(wire) -> None:
    store = InMemoryDocumentStore([task("t1", "Design"), project("p1", "p1", tasks=[ref("t1", key=True)])])
    client = wire(store)

    response = client.delete("/tasks/t1", headers=ADMIN)

    assert response.status_code == 409
    body = response.json()
    assert "Referenced in 1 project: p1" in body["details"]
    assert body["suggestion"] == "Consider archiving this task instead of deleting it."


def test_bulk_delete_accounts_for_every_id(wire) -> None:
    store = InMemoryDocumentStore(
        [
            task("t1", "Design"),
            task("t2", "Build"),
            project("p1", "Apollo", tasks=[ref("t2", key=True)]),
        ],
    )
    client = wire(store)
    task_ids = ["t1", "t2", "t3"]

    response = client.post("/tasks/bulk", json={"taskIds": task_ids, "operation": "delete"}, headers=ADMIN)

    assert response.status_code == 200
    payload = response.json()
    assert payload["successCount"] + payload["errorCount"] == len(task_ids)
    blocked = next(e for e in payload["errors"] if e["id"] == "t2")
    assert blocked["error"]


def test_project_delete_is_idempotent(wire) -> None:
    store = InMemoryDocumentStore([project("p1", "Apollo")])
    client = wire(store)

    first = client.delete("/projects/p1", headers=ADMIN)
    second = client.delete("/projects/p1", headers=ADMIN)

    assert first.json() == {"message": "Project deleted successfully", "deleted": True}
    assert second.status_code == 404


def test_client_archive_and_team_assignment(wire) -> None:
    store = InMemoryDocumentStore(
        [
            {"_id": "c1", "_type": "client", "name": "Acme"},
            person("m1", "Ann", "Lee", role="manager"),
            person("u2", "Bob", "Ray"),
        ],
    )
    client = wire(store)

    archived = client.delete("/clients/c1", headers=ADMIN)
    assigned = client.post("/team/m1/members", json={"userIds": ["u2"]}, headers=ADMIN)

    assert archived.status_code == 200
    assert archived.json()["client"]["isArchived"] is True
    assert "c1" in store.documents
    assert assigned.status_code == 200
    assert assigned.json()["assignedCount"] == 1
    assert assigned.json()["message"] == "1 user assigned to team successfully"
