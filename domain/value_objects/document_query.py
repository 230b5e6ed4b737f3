"""Typed queries against the document store.

The store's own query language is opaque to the cascade engine; queries are
described with these value objects and translated by each store adapter.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel

from domain.value_objects.document_kind import DocumentKind


class Operator(str, Enum):
    EQ = "eq"
    NE = "ne"
    IN = "in"
    REF_EQ = "ref_eq"
    """Field path holds a reference (bare id or ``_ref`` object) to the value."""
    REF_IN = "ref_in"
    """Field path holds a reference to any of the values."""
    REFERENCES = "references"
    """Document references any of the values anywhere (``path`` is ignored)."""


class Condition(BaseModel):
    path: str
    op: Operator
    value: Any = None

    model_config = {"frozen": True}

    @classmethod
    def eq(cls, path: str, value: Any) -> "Condition":  # noqa: ANN401
        return cls(path=path, op=Operator.EQ, value=value)

    @classmethod
    def ne(cls, path: str, value: Any) -> "Condition":  # noqa: ANN401
        return cls(path=path, op=Operator.NE, value=value)

    @classmethod
    def is_in(cls, path: str, values: list[Any]) -> "Condition":
        return cls(path=path, op=Operator.IN, value=list(values))

    @classmethod
    def ref(cls, path: str, target_ids: list[str]) -> "Condition":
        if len(target_ids) == 1:
            return cls(path=path, op=Operator.REF_EQ, value=target_ids[0])
        return cls(path=path, op=Operator.REF_IN, value=list(target_ids))

    @classmethod
    def references(cls, target_ids: list[str]) -> "Condition":
        return cls(path="*", op=Operator.REFERENCES, value=list(target_ids))


class DocumentQuery(BaseModel):
    """Select documents of one kind.

    All ``where`` conditions must hold; when ``any_of`` is given at least one
    of its conditions must hold as well. Drafts are excluded unless asked for.
    """

    kind: DocumentKind
    where: tuple[Condition, ...] = ()
    any_of: tuple[Condition, ...] = ()
    include_drafts: bool = False

    model_config = {"frozen": True}
