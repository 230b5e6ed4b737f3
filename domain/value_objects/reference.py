"""Reference value objects.

Documents point at each other either with a bare id string (older documents)
or with a reference object ``{"_type": "reference", "_ref": <id>, "_key": <key>}``.
Everything read from the store is normalized into :data:`Reference` right away
so the rest of the code only deals with one shape.
"""

from typing import Any

from pydantic import BaseModel


class RawId(BaseModel):
    """A reference stored as a bare id string."""

    id: str

    model_config = {"frozen": True}


class RefObject(BaseModel):
    """A reference stored as an object with an ``_ref`` field."""

    id: str
    element_key: str | None = None
    """Stable ``_key`` of the array element holding the reference, if any."""

    weak: bool = False
    """Weak references are not enforced by the store on delete."""

    model_config = {"frozen": True}

    def to_document(self) -> dict[str, Any]:
        """Serialize to the shape the store expects."""
        doc: dict[str, Any] = {"_type": "reference", "_ref": self.id}
        if self.element_key:
            doc["_key"] = self.element_key
        if self.weak:
            doc["_weak"] = True
        return doc


Reference = RawId | RefObject


def normalize_reference(value: object, element_key: str | None = None) -> Reference | None:
    """Normalize a raw field value into a :data:`Reference`.

    Returns ``None`` for empty values and for values that are not references.
    """
    if isinstance(value, str):
        return RawId(id=value) if value else None
    if isinstance(value, dict):
        ref_id = value.get("_ref") or value.get("id")
        if not isinstance(ref_id, str) or not ref_id:
            return None
        return RefObject(
            id=ref_id,
            element_key=value.get("_key") or element_key,
            weak=bool(value.get("_weak", False)),
        )
    return None


def iter_reference_ids(value: object, *, include_weak: bool = True) -> list[str]:
    """Collect every ``_ref`` id found anywhere inside ``value``."""
    found: list[str] = []
    if isinstance(value, dict):
        ref_id = value.get("_ref")
        if isinstance(ref_id, str) and ref_id and (include_weak or not value.get("_weak")):
            found.append(ref_id)
        for key, child in value.items():
            if key.startswith("_"):
                continue
            found.extend(iter_reference_ids(child, include_weak=include_weak))
    elif isinstance(value, list):
        for item in value:
            found.extend(iter_reference_ids(item, include_weak=include_weak))
    return found
