import re
from typing import Any
from uuid import uuid4

import structlog
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorClientSession
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from domain.exceptions import (
    InfrastructureError,
    ReferenceConflictError,
    TransactionLimitError,
)
from domain.value_objects.document_query import Condition, DocumentQuery, Operator
from domain.value_objects.field_path import FieldPath
from domain.value_objects.mutation import DeleteMutation, Mutation, PatchMutation
from domain.value_objects.reference import iter_reference_ids
from infrastructure.config import Settings
from infrastructure.document_stores.patching import (
    DRAFT_PREFIX,
    INDEX_FIELDS,
    REFS_FIELD,
    STRONG_REFS_FIELD,
    apply_patch,
    strip_index_fields,
    with_reference_index,
)

logger = structlog.get_logger()

HIDE_INDEX_FIELDS = dict.fromkeys(INDEX_FIELDS, False)
REFERENCING_ID_LIMIT = 100
DRAFT_PATTERN = "^" + re.escape(DRAFT_PREFIX)


def _condition_filter(condition: Condition) -> dict[str, Any]:
    if condition.op is Operator.REFERENCES:
        return {REFS_FIELD: {"$in": list(condition.value)}}

    path = FieldPath.of(condition.path).store_path
    if condition.op is Operator.EQ:
        return {path: condition.value}
    if condition.op is Operator.NE:
        return {path: {"$ne": condition.value}}
    if condition.op is Operator.IN:
        return {path: {"$in": list(condition.value)}}
    if condition.op is Operator.REF_EQ:
        # bare id or {"_ref": id}; array paths are traversed by MongoDB itself
        return {"$or": [{path: condition.value}, {f"{path}._ref": condition.value}]}
    if condition.op is Operator.REF_IN:
        values = list(condition.value)
        return {"$or": [{path: {"$in": values}}, {f"{path}._ref": {"$in": values}}]}
    msg = f"Unsupported query operator: {condition.op}"
    raise ValueError(msg)


def build_filter(query: DocumentQuery) -> dict[str, Any]:
    """Translate a :class:`DocumentQuery` into a MongoDB filter document."""
    clauses: list[dict[str, Any]] = [{"_type": query.kind.value}]
    if not query.include_drafts:
        clauses.append({"_id": {"$not": {"$regex": DRAFT_PATTERN}}})
    clauses.extend(_condition_filter(condition) for condition in query.where)
    if query.any_of:
        clauses.append({"$or": [_condition_filter(condition) for condition in query.any_of]})
    return {"$and": clauses}


class MongoDocumentStore:
    """Document store adapter over a single MongoDB collection.

    Every kind lives in the same collection and is told apart by ``_type``.
    Each write refreshes the ``_refs``/``_strong_refs`` index arrays so
    reference lookups stay indexed and a document that is still strongly
    referenced cannot be deleted.
    """

    def __init__(self, client: AsyncIOMotorClient, settings: Settings) -> None:
        self.client = client
        self.db = self.client[settings.mongo_db]
        self.documents = self.db[settings.mongo_documents_collection]
        self._transaction_limit = settings.transaction_limit

    @property
    def transaction_limit(self) -> int:
        return self._transaction_limit

    async def ensure_indexes(self) -> None:
        await self.documents.create_index("_type")
        await self.documents.create_index(REFS_FIELD)
        await self.documents.create_index(STRONG_REFS_FIELD)

    async def get(self, document_id: str) -> dict[str, Any] | None:
        try:
            return await self.documents.find_one({"_id": document_id}, projection=HIDE_INDEX_FIELDS)
        except PyMongoError as e:
            msg = f"Failed to read document {document_id}: {e!s}"
            raise InfrastructureError(msg) from e

    async def query(self, query: DocumentQuery) -> list[dict[str, Any]]:
        try:
            cursor = self.documents.find(build_filter(query), projection=HIDE_INDEX_FIELDS)
            return [doc async for doc in cursor]
        except PyMongoError as e:
            logger.error("document_query_failed", kind=query.kind.value, error=str(e))
            msg = f"Failed to query {query.kind.value} documents: {e!s}"
            raise InfrastructureError(msg) from e

    async def patch(
        self,
        document_id: str,
        set_fields: dict[str, Any] | None = None,
        unset_fields: list[str] | None = None,
    ) -> dict[str, Any] | None:
        try:
            current = await self.documents.find_one({"_id": document_id})
            if current is None:
                return None
            patched = with_reference_index(apply_patch(current, set_fields, unset_fields))
            await self.documents.replace_one({"_id": document_id}, patched)
        except PyMongoError as e:
            msg = f"Failed to patch document {document_id}: {e!s}"
            raise InfrastructureError(msg) from e
        return strip_index_fields(patched)

    async def append(
        self,
        document_id: str,
        field: str,
        items: list[Any],
    ) -> dict[str, Any] | None:
        update: dict[str, Any] = {"$push": {field: {"$each": items}}}
        refs = iter_reference_ids(items)
        if refs:
            update["$addToSet"] = {
                REFS_FIELD: {"$each": refs},
                STRONG_REFS_FIELD: {"$each": iter_reference_ids(items, include_weak=False)},
            }
        try:
            return await self.documents.find_one_and_update(
                {"_id": document_id},
                update,
                projection=HIDE_INDEX_FIELDS,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            msg = f"Failed to append to {field} on {document_id}: {e!s}"
            raise InfrastructureError(msg) from e

    async def delete(self, document_id: str) -> bool:
        try:
            return await self._delete(document_id)
        except PyMongoError as e:
            msg = f"Failed to delete document {document_id}: {e!s}"
            raise InfrastructureError(msg) from e

    async def create(self, document: dict[str, Any]) -> dict[str, Any]:
        body = with_reference_index({**document, "_id": document.get("_id") or uuid4().hex})
        try:
            await self.documents.insert_one(body)
        except PyMongoError as e:
            msg = f"Failed to create {document.get('_type', 'document')}: {e!s}"
            raise InfrastructureError(msg) from e
        return strip_index_fields(body)

    async def commit(self, mutations: list[Mutation]) -> None:
        if len(mutations) > self.transaction_limit:
            msg = (
                f"Transaction holds {len(mutations)} mutations, "
                f"the limit is {self.transaction_limit}"
            )
            raise TransactionLimitError(msg)
        if not mutations:
            return
        try:
            async with await self.client.start_session() as session:
                async with session.start_transaction():
                    for mutation in mutations:
                        await self._apply(mutation, session)
        except PyMongoError as e:
            logger.warning("transaction_failed", size=len(mutations), error=str(e))
            msg = f"Transaction failed: {e!s}"
            raise InfrastructureError(msg) from e

    async def _apply(self, mutation: Mutation, session: AsyncIOMotorClientSession) -> None:
        if isinstance(mutation, DeleteMutation):
            await self._delete(mutation.document_id, session)
            return
        if not isinstance(mutation, PatchMutation):
            msg = f"Unsupported mutation: {mutation!r}"
            raise TypeError(msg)
        current = await self.documents.find_one({"_id": mutation.document_id}, session=session)
        if current is None:
            # aborts the surrounding transaction
            msg = f"Document {mutation.document_id} not found"
            raise InfrastructureError(msg)
        patched = with_reference_index(apply_patch(current, mutation.set, mutation.unset))
        await self.documents.replace_one({"_id": mutation.document_id}, patched, session=session)

    async def _delete(
        self,
        document_id: str,
        session: AsyncIOMotorClientSession | None = None,
    ) -> bool:
        cursor = self.documents.find(
            {STRONG_REFS_FIELD: document_id, "_id": {"$ne": document_id}},
            projection={"_id": True},
            session=session,
        )
        referencing_ids = [doc["_id"] for doc in await cursor.to_list(length=REFERENCING_ID_LIMIT)]
        if referencing_ids:
            quoted = ", ".join(f'"{ref_id}"' for ref_id in referencing_ids)
            msg = (
                f'Document "{document_id}" cannot be deleted as there are references '
                f"to it from {quoted}"
            )
            raise ReferenceConflictError(msg, referencing_ids)
        result = await self.documents.delete_one({"_id": document_id}, session=session)
        return result.deleted_count > 0
