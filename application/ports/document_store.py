from typing import Any, Protocol

from domain.value_objects.document_query import DocumentQuery
from domain.value_objects.mutation import Mutation


class DocumentStore(Protocol):
    """Port for the schema-less document store holding every entity.

    This is a protocol (interface) that abstracts the hosted store, so the
    cascade engine can run against MongoDB in production and an in-memory
    double in tests.

    Following the Ports & Adapters pattern from Clean Architecture.
    """

    @property
    def transaction_limit(self) -> int:
        """Maximum number of mutations a single :meth:`commit` accepts."""
        ...

    async def get(self, document_id: str) -> dict[str, Any] | None:
        """Fetch one document by id, or ``None`` if it does not exist."""
        ...

    async def query(self, query: DocumentQuery) -> list[dict[str, Any]]:
        """Return every document matching ``query``.

        Raises:
            InfrastructureError: If the read fails.

        """
        ...

    async def patch(
        self,
        document_id: str,
        set_fields: dict[str, Any] | None = None,
        unset_fields: list[str] | None = None,
    ) -> dict[str, Any] | None:
        """Apply a single-document patch and return the updated document.

        Returns ``None`` if the document does not exist.
        """
        ...

    async def append(
        self,
        document_id: str,
        field: str,
        items: list[Any],
    ) -> dict[str, Any] | None:
        """Append ``items`` to the array at ``field`` and return the updated document."""
        ...

    async def delete(self, document_id: str) -> bool:
        """Delete one document.

        Returns:
            ``True`` if a document was deleted, ``False`` if none existed.

        Raises:
            ReferenceConflictError: If other documents still hold strong
                references to it.

        """
        ...

    async def create(self, document: dict[str, Any]) -> dict[str, Any]:
        """Insert a new document and return it (with ``_id`` assigned)."""
        ...

    async def commit(self, mutations: list[Mutation]) -> None:
        """Apply ``mutations`` atomically as one transaction.

        Raises:
            TransactionLimitError: If more than :attr:`transaction_limit`
                mutations are given.
            InfrastructureError: If the transaction fails; nothing is applied.

        """
        ...
