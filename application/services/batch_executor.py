"""Chunked, best-effort execution of mutation lists against the document store."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from application.dtos.cascade_dtos import BatchOutcome
from application.services.chunking import chunked
from domain.value_objects.mutation import DeleteMutation, Mutation, PatchMutation

if TYPE_CHECKING:
    from application.ports.document_store import DocumentStore

logger = structlog.get_logger()

DEFAULT_TRANSACTION_LIMIT = 200
DEFAULT_DELETE_CHUNK_SIZE = 50


class _ChunkResult:
    def __init__(self, index: int, committed: int, failed_ids: list[str]) -> None:
        self.index = index
        self.committed = committed
        self.failed_ids = failed_ids

    @property
    def failed(self) -> bool:
        return bool(self.failed_ids)


class BatchExecutor:
    """Split mutations into store-sized chunks and commit each chunk on its own.

    Patches are committed as one transaction per chunk of at most
    ``transaction_limit`` mutations. The store does not delete inside
    transactions, so deletes are grouped into chunks of ``delete_chunk_size``
    and each chunk is issued as concurrent single-document deletes.

    A failing chunk is recorded by index and never stops the remaining chunks.
    Chunk indices number patch chunks first, then delete chunks.
    """

    def __init__(
        self,
        document_store: DocumentStore,
        transaction_limit: int = DEFAULT_TRANSACTION_LIMIT,
        delete_chunk_size: int = DEFAULT_DELETE_CHUNK_SIZE,
        *,
        parallel: bool = False,
    ) -> None:
        self.document_store = document_store
        self.transaction_limit = min(transaction_limit, document_store.transaction_limit)
        self.delete_chunk_size = delete_chunk_size
        self.parallel = parallel

    async def execute(self, mutations: list[Mutation]) -> BatchOutcome:
        patches = [m for m in mutations if isinstance(m, PatchMutation) and not m.is_empty]
        deletes = [m for m in mutations if isinstance(m, DeleteMutation)]

        jobs = [
            self._commit_patch_chunk(index, chunk)
            for index, chunk in enumerate(chunked(patches, self.transaction_limit))
        ]
        offset = len(jobs)
        jobs.extend(
            self._run_delete_chunk(offset + index, chunk)
            for index, chunk in enumerate(chunked(deletes, self.delete_chunk_size))
        )

        if self.parallel:
            results = list(await asyncio.gather(*jobs))
        else:
            results = [await job for job in jobs]

        outcome = BatchOutcome(chunk_count=len(results))
        for result in sorted(results, key=lambda r: r.index):
            outcome.committed_count += result.committed
            if result.failed:
                outcome.failed_chunk_indices.append(result.index)
                outcome.failed_document_ids.extend(result.failed_ids)

        logger.info(
            "batch_execution_completed",
            chunk_count=outcome.chunk_count,
            committed_count=outcome.committed_count,
            failed_chunks=outcome.failed_chunk_indices,
        )
        return outcome

    async def _commit_patch_chunk(self, index: int, chunk: list[PatchMutation]) -> _ChunkResult:
        try:
            await self.document_store.commit(list(chunk))
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "batch_chunk_failed",
                chunk_index=index,
                operation="patch",
                size=len(chunk),
                error=str(e),
                error_type=type(e).__name__,
            )
            return _ChunkResult(index, 0, [m.document_id for m in chunk])
        return _ChunkResult(index, len(chunk), [])

    async def _run_delete_chunk(self, index: int, chunk: list[DeleteMutation]) -> _ChunkResult:
        outcomes = await asyncio.gather(
            *(self.document_store.delete(m.document_id) for m in chunk),
            return_exceptions=True,
        )
        committed = 0
        failed_ids: list[str] = []
        for mutation, outcome in zip(chunk, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                failed_ids.append(mutation.document_id)
                logger.warning(
                    "batch_delete_failed",
                    chunk_index=index,
                    document_id=mutation.document_id,
                    error=str(outcome),
                    error_type=type(outcome).__name__,
                )
            elif outcome:
                committed += 1
        return _ChunkResult(index, committed, failed_ids)
