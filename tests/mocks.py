"""Mock implementations and document builders for testing."""

from __future__ import annotations

import copy
from typing import Any
from uuid import uuid4

from domain.exceptions import (
    InfrastructureError,
    ReferenceConflictError,
    TransactionLimitError,
)
from domain.value_objects.document_query import Condition, DocumentQuery, Operator
from domain.value_objects.field_path import FieldPath
from domain.value_objects.mutation import DeleteMutation, Mutation, PatchMutation
from domain.value_objects.reference import iter_reference_ids
from infrastructure.document_stores.patching import apply_patch, is_draft

# ---------------------------------------------------------------------------
# Document store mock
# ---------------------------------------------------------------------------


def _values_at(document: dict[str, Any], path: str) -> list[Any]:
    """Values at a dotted path, walking into arrays the way MongoDB does."""
    values: list[Any] = [document]
    for name in path.split("."):
        name = name.removesuffix("[]")
        found = []
        for value in values:
            for item in value if isinstance(value, list) else [value]:
                if isinstance(item, dict) and name in item:
                    found.append(item[name])
        values = found
    return values


def _equals(values: list[Any], expected: object) -> bool:
    return any(v == expected or (isinstance(v, list) and expected in v) for v in values)


def _matches(document: dict[str, Any], condition: Condition) -> bool:
    op = condition.op
    if op is Operator.REFERENCES:
        return bool(set(iter_reference_ids(document)) & set(condition.value))
    if op in {Operator.REF_EQ, Operator.REF_IN}:
        wanted = {condition.value} if op is Operator.REF_EQ else set(condition.value)
        refs = FieldPath.of(condition.path).references_in(document)
        return any(ref.id in wanted for ref in refs)
    values = _values_at(document, condition.path)
    if op is Operator.EQ:
        return _equals(values, condition.value)
    if op is Operator.NE:
        return not _equals(values, condition.value)
    if op is Operator.IN:
        return any(_equals(values, candidate) for candidate in condition.value)
    msg = f"Unsupported operator {op}"
    raise ValueError(msg)


class InMemoryDocumentStore:
    """DocumentStore double keeping documents in a dict.

    Mirrors the store rules the cascade relies on: strong references block
    deletes, transactions are atomic and capped. Failures can be injected
    per commit call, per deleted id, or for every query.
    """

    def __init__(
        self,
        documents: list[dict[str, Any]] | None = None,
        transaction_limit: int = 200,
    ) -> None:
        self.documents: dict[str, dict[str, Any]] = {}
        for document in documents or []:
            self.add(document)
        self._transaction_limit = transaction_limit

        self.queries: list[DocumentQuery] = []
        self.commits: list[list[Mutation]] = []
        self.commit_calls = 0
        self.deleted_ids: list[str] = []
        self.patched_ids: list[str] = []

        self.fail_commit_calls: set[int] = set()
        self.fail_delete_ids: set[str] = set()
        self.fail_queries = False

    @property
    def transaction_limit(self) -> int:
        return self._transaction_limit

    @property
    def write_count(self) -> int:
        return len(self.commits) + len(self.deleted_ids) + len(self.patched_ids)

    def add(self, document: dict[str, Any]) -> None:
        self.documents[document["_id"]] = copy.deepcopy(document)

    def snapshot(self, document_id: str) -> dict[str, Any] | None:
        document = self.documents.get(document_id)
        return copy.deepcopy(document) if document else None

    async def get(self, document_id: str) -> dict[str, Any] | None:
        return self.snapshot(document_id)

    async def query(self, query: DocumentQuery) -> list[dict[str, Any]]:
        self.queries.append(query)
        if self.fail_queries:
            msg = "query failed"
            raise InfrastructureError(msg)
        return [
            copy.deepcopy(document)
            for document in self.documents.values()
            if document.get("_type") == query.kind.value
            and (query.include_drafts or not is_draft(document["_id"]))
            and all(_matches(document, c) for c in query.where)
            and (not query.any_of or any(_matches(document, c) for c in query.any_of))
        ]

    async def patch(
        self,
        document_id: str,
        set_fields: dict[str, Any] | None = None,
        unset_fields: list[str] | None = None,
    ) -> dict[str, Any] | None:
        if document_id not in self.documents:
            return None
        self.documents[document_id] = apply_patch(
            self.documents[document_id],
            set_fields,
            unset_fields,
        )
        self.patched_ids.append(document_id)
        return self.snapshot(document_id)

    async def append(
        self,
        document_id: str,
        field: str,
        items: list[Any],
    ) -> dict[str, Any] | None:
        document = self.documents.get(document_id)
        if document is None:
            return None
        document.setdefault(field, []).extend(copy.deepcopy(items))
        self.patched_ids.append(document_id)
        return self.snapshot(document_id)

    async def delete(self, document_id: str) -> bool:
        if document_id in self.fail_delete_ids:
            msg = f"delete of {document_id} failed"
            raise InfrastructureError(msg)
        self._check_not_referenced(document_id, self.documents)
        if self.documents.pop(document_id, None) is None:
            return False
        self.deleted_ids.append(document_id)
        return True

    async def create(self, document: dict[str, Any]) -> dict[str, Any]:
        body = {**copy.deepcopy(document), "_id": document.get("_id") or uuid4().hex}
        self.documents[body["_id"]] = body
        return copy.deepcopy(body)

    async def commit(self, mutations: list[Mutation]) -> None:
        call = self.commit_calls
        self.commit_calls += 1
        if len(mutations) > self.transaction_limit:
            msg = f"{len(mutations)} mutations exceed {self.transaction_limit}"
            raise TransactionLimitError(msg)
        if call in self.fail_commit_calls:
            msg = f"commit {call} failed"
            raise InfrastructureError(msg)

        staged = copy.deepcopy(self.documents)
        for mutation in mutations:
            if isinstance(mutation, DeleteMutation):
                self._check_not_referenced(mutation.document_id, staged)
                staged.pop(mutation.document_id, None)
            elif isinstance(mutation, PatchMutation):
                if mutation.document_id not in staged:
                    msg = f"Document {mutation.document_id} not found"
                    raise InfrastructureError(msg)
                staged[mutation.document_id] = apply_patch(
                    staged[mutation.document_id],
                    mutation.set,
                    mutation.unset,
                )
        self.documents = staged
        self.commits.append(list(mutations))

    @staticmethod
    def _check_not_referenced(document_id: str, documents: dict[str, dict[str, Any]]) -> None:
        referencing = [
            other_id
            for other_id, other in documents.items()
            if other_id != document_id
            and document_id in iter_reference_ids(other, include_weak=False)
        ]
        if referencing:
            msg = f'Document "{document_id}" cannot be deleted as there are references to it'
            raise ReferenceConflictError(msg, referencing)


# ---------------------------------------------------------------------------
# Document builders
# ---------------------------------------------------------------------------


def ref(target_id: str, *, key: bool = False, weak: bool = False) -> dict[str, Any]:
    document: dict[str, Any] = {"_type": "reference", "_ref": target_id}
    if key:
        document["_key"] = uuid4().hex[:12]
    if weak:
        document["_weak"] = True
    return document


def person(person_id: str, first: str, last: str, **fields: Any) -> dict[str, Any]:  # noqa: ANN401
    return {
        "_id": person_id,
        "_type": "person",
        "firstName": first,
        "lastName": last,
        "isActive": True,
        "role": "user",
        **fields,
    }


def timesheet(  # noqa: PLR0913
    timesheet_id: str,
    user_id: str,
    status: str = "approved",
    entries: list[dict[str, Any]] | None = None,
    approved_by: str | None = None,
    week_start: str = "2024-01-01",
) -> dict[str, Any]:
    document: dict[str, Any] = {
        "_id": timesheet_id,
        "_type": "timesheet",
        "user": ref(user_id),
        "status": status,
        "weekStart": week_start,
        "entries": entries if entries is not None else [],
    }
    if approved_by:
        document["approvedBy"] = ref(approved_by)
    return document


def entry(task_id: str | None = None, project_id: str | None = None, hours: float = 1.0) -> dict[str, Any]:
    document: dict[str, Any] = {"_key": uuid4().hex[:12], "hours": hours}
    if task_id:
        document["task"] = ref(task_id)
    if project_id:
        document["project"] = ref(project_id)
    return document


def project(project_id: str, name: str, **fields: Any) -> dict[str, Any]:  # noqa: ANN401
    return {"_id": project_id, "_type": "project", "name": name, "isActive": True, **fields}


def assignment(user_id: str) -> dict[str, Any]:
    return {"_key": uuid4().hex[:12], "user": ref(user_id), "role": "member"}


def task(task_id: str, name: str, **fields: Any) -> dict[str, Any]:  # noqa: ANN401
    return {"_id": task_id, "_type": "task", "name": name, **fields}
