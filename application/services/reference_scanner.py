"""Reference discovery for cascade deletion."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import TYPE_CHECKING, Any

import structlog

from application.services.chunking import chunked
from domain.exceptions import ScanError
from domain.services.reference_registry import edges_for
from domain.value_objects.document_query import Condition, DocumentQuery
from domain.value_objects.reference import iter_reference_ids
from domain.value_objects.reference_hit import ReferenceHit, ReferenceHitSet, display_name

if TYPE_CHECKING:
    from application.ports.document_store import DocumentStore
    from domain.services.reference_registry import ReferenceEdge
    from domain.value_objects.document_kind import DocumentKind

logger = structlog.get_logger()

DEFAULT_QUERY_CHUNK_SIZE = 50

# target id -> holder kind -> holder id -> (document, matched field labels)
_Collected = dict[str, dict["DocumentKind", dict[str, tuple[dict[str, Any], list[str]]]]]


class ReferenceScanner:
    """Find every document that references a target, using the static registry.

    Edges that hit the same holder kind under the same scope share one query.
    Those queries are independent of each other and run concurrently; id lists
    longer than ``query_chunk_size`` are split and the chunk queries run
    concurrently too, then get unioned.

    Any failed read aborts the whole scan with :class:`ScanError`: an
    incomplete scan must never look like "no references".
    """

    def __init__(
        self,
        document_store: DocumentStore,
        query_chunk_size: int = DEFAULT_QUERY_CHUNK_SIZE,
    ) -> None:
        self.document_store = document_store
        self.query_chunk_size = query_chunk_size

    async def scan(self, target_id: str, target_kind: DocumentKind) -> ReferenceHitSet:
        hit_sets = await self.scan_many([target_id], target_kind)
        return hit_sets[target_id]

    async def scan_many(
        self,
        target_ids: list[str],
        target_kind: DocumentKind,
    ) -> dict[str, ReferenceHitSet]:
        """Scan several targets of the same kind at once, one hit set per id."""
        unique_ids = list(dict.fromkeys(target_ids))
        groups = self._group_edges(edges_for(target_kind))

        logger.info(
            "reference_scan_started",
            target_kind=target_kind.value,
            target_count=len(unique_ids),
            query_groups=len(groups),
        )
        try:
            group_results = await asyncio.gather(
                *(self._run_group(edges, unique_ids) for edges in groups),
            )
        except Exception as e:
            logger.error(
                "reference_scan_failed",
                target_kind=target_kind.value,
                target_ids=unique_ids[:5],
                error=str(e),
                error_type=type(e).__name__,
            )
            msg = f"Could not scan references to {target_kind.value}: {e!s}"
            raise ScanError(msg) from e

        collected: _Collected = {tid: defaultdict(dict) for tid in unique_ids}
        for edges, documents in zip(groups, group_results, strict=True):
            self._collect(collected, edges, documents, set(unique_ids))

        hit_sets = {
            tid: ReferenceHitSet(
                target_id=tid,
                target_kind=target_kind,
                hits={
                    kind: [
                        ReferenceHit(
                            holder_id=holder_id,
                            holder_kind=kind,
                            name=display_name(document),
                            field_paths=tuple(labels),
                            document=document,
                        )
                        for holder_id, (document, labels) in holders.items()
                    ]
                    for kind, holders in by_kind.items()
                },
            )
            for tid, by_kind in collected.items()
        }
        logger.info(
            "reference_scan_completed",
            target_kind=target_kind.value,
            total_hits=sum(hs.total for hs in hit_sets.values()),
            hits={
                tid: {kind.value: count for kind, count in hs.counts_by_kind().items()}
                for tid, hs in list(hit_sets.items())[:10]
            },
        )
        return hit_sets

    @staticmethod
    def _group_edges(edges: tuple[ReferenceEdge, ...]) -> list[list[ReferenceEdge]]:
        groups: dict[tuple, list[ReferenceEdge]] = {}
        for edge in edges:
            groups.setdefault((edge.holder_kind, edge.scope), []).append(edge)
        return list(groups.values())

    @staticmethod
    def _edge_condition(edge: ReferenceEdge, target_ids: list[str]) -> Condition:
        if edge.field_path is None:
            return Condition.references(target_ids)
        return Condition.ref(edge.field_path.raw, target_ids)

    async def _run_group(
        self,
        edges: list[ReferenceEdge],
        target_ids: list[str],
    ) -> list[dict[str, Any]]:
        holder_kind = edges[0].holder_kind
        scope = edges[0].scope
        queries = [
            DocumentQuery(
                kind=holder_kind,
                where=scope,
                any_of=tuple(self._edge_condition(edge, chunk) for edge in edges),
            )
            for chunk in chunked(target_ids, self.query_chunk_size)
        ]
        chunk_results = await asyncio.gather(*(self.document_store.query(q) for q in queries))

        union: dict[str, dict[str, Any]] = {}
        for documents in chunk_results:
            for document in documents:
                union.setdefault(document["_id"], document)
        return list(union.values())

    @staticmethod
    def _collect(
        collected: _Collected,
        edges: list[ReferenceEdge],
        documents: list[dict[str, Any]],
        target_ids: set[str],
    ) -> None:
        for document in documents:
            holder_id = document["_id"]
            for edge in edges:
                if edge.field_path is None:
                    referenced = set(iter_reference_ids(document))
                else:
                    referenced = {ref.id for ref in edge.field_path.references_in(document)}
                for target_id in referenced & target_ids:
                    if target_id == holder_id:
                        continue
                    holders = collected[target_id][edge.holder_kind]
                    _, labels = holders.setdefault(holder_id, (document, []))
                    if edge.path_label not in labels:
                        labels.append(edge.path_label)
