from typing import Any

from pydantic import BaseModel, Field

from domain.value_objects.document_kind import DocumentKind


def display_name(document: dict[str, Any]) -> str:
    """Best human-readable name for a document, falling back to its id."""
    first = document.get("firstName")
    last = document.get("lastName")
    if first or last:
        return " ".join(part for part in (first, last) if part)
    if document.get("name"):
        return str(document["name"])
    if document.get("title"):
        return str(document["title"])
    if document.get("weekStart"):
        return f"Week of {document['weekStart']}"
    return str(document.get("_id", "unknown"))


class ReferenceHit(BaseModel):
    """A document holding at least one reference to the scanned target."""

    holder_id: str
    holder_kind: DocumentKind
    name: str
    field_paths: tuple[str, ...]
    """Registry field paths at which the reference was found."""

    document: dict[str, Any] = Field(default_factory=dict)
    """Snapshot of the holder as read during the scan."""

    model_config = {"frozen": True}


class ReferenceHitSet(BaseModel):
    """Every known holder of references to one target, grouped by holder kind."""

    target_id: str
    target_kind: DocumentKind
    hits: dict[DocumentKind, list[ReferenceHit]] = Field(default_factory=dict)

    model_config = {"frozen": True}

    def of_kind(self, kind: DocumentKind) -> list[ReferenceHit]:
        return list(self.hits.get(kind, []))

    def with_field(self, kind: DocumentKind, field_path: str) -> list[ReferenceHit]:
        return [hit for hit in self.of_kind(kind) if field_path in hit.field_paths]

    def counts_by_kind(self) -> dict[DocumentKind, int]:
        return {kind: len(hits) for kind, hits in self.hits.items() if hits}

    @property
    def total(self) -> int:
        return sum(len(hits) for hits in self.hits.values())
