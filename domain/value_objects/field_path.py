from typing import Any

from pydantic import BaseModel, field_validator

from domain.value_objects.reference import Reference, normalize_reference


class FieldPath(BaseModel):
    """Path to a reference-holding field inside a document.

    Segments are separated by ``.``; a trailing ``[]`` marks an array, e.g.
    ``assignedUsers[].user`` or ``filters.users[]``.
    """

    raw: str

    model_config = {"frozen": True}

    @field_validator("raw")
    @classmethod
    def validate_raw(cls, v: str) -> str:
        """Reject empty segments and nested arrays."""
        segments = v.split(".")
        if not v or any(not s or s == "[]" for s in segments):
            msg = f"Invalid field path: {v!r}"
            raise ValueError(msg)
        if sum(1 for s in segments if s.endswith("[]")) > 1:
            msg = f"Nested arrays are not supported: {v!r}"
            raise ValueError(msg)
        return v

    @classmethod
    def of(cls, raw: str) -> "FieldPath":
        return cls(raw=raw)

    def __str__(self) -> str:
        return self.raw

    @property
    def segments(self) -> list[tuple[str, bool]]:
        """``(name, is_array)`` pairs."""
        return [(s.removesuffix("[]"), s.endswith("[]")) for s in self.raw.split(".")]

    @property
    def store_path(self) -> str:
        """Dotted path as understood by the store (array markers dropped)."""
        return ".".join(name for name, _ in self.segments)

    @property
    def is_array(self) -> bool:
        return any(is_array for _, is_array in self.segments)

    def _split_at_array(self) -> tuple[list[str], list[str]]:
        names = [name for name, _ in self.segments]
        for index, (_, is_array) in enumerate(self.segments):
            if is_array:
                return names[: index + 1], names[index + 1 :]
        return names, []

    def references_in(self, document: dict[str, Any]) -> list[Reference]:
        """Return every reference stored at this path in ``document``."""
        found: list[Reference] = []
        head, tail = self._split_at_array()
        value = _get(document, head)
        if not self.is_array:
            ref = normalize_reference(value)
            return [ref] if ref else []
        if not isinstance(value, list):
            return []
        for element in value:
            element_key = element.get("_key") if isinstance(element, dict) else None
            target = _get(element, tail) if tail else element
            ref = normalize_reference(target, element_key=element_key)
            if ref:
                found.append(ref)
        return found

    def contains(self, document: dict[str, Any], target_id: str) -> bool:
        return any(ref.id == target_id for ref in self.references_in(document))

    def count(self, document: dict[str, Any], target_ids: set[str]) -> int:
        """Count references at this path pointing at any of ``target_ids``."""
        return sum(1 for ref in self.references_in(document) if ref.id in target_ids)

    def detach(self, document: dict[str, Any], target_id: str) -> tuple[dict[str, Any], list[str]]:
        """Compute the ``(set, unset)`` patch that removes ``target_id`` at this path.

        Single references are unset; array elements pointing at the target are
        dropped and the remaining elements are written back untouched.
        Returns empty collections when the document does not hold the reference.
        """
        if not self.contains(document, target_id):
            return {}, []
        head, tail = self._split_at_array()
        if not self.is_array:
            return {}, [".".join(head)]
        elements = _get(document, head) or []
        kept = []
        for element in elements:
            target = _get(element, tail) if tail else element
            ref = normalize_reference(target)
            if ref is None or ref.id != target_id:
                kept.append(element)
        return {".".join(head): kept}, []


def _get(value: object, names: list[str]) -> object:
    for name in names:
        if not isinstance(value, dict):
            return None
        value = value.get(name)
    return value
