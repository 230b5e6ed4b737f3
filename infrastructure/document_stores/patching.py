"""Pure helpers shared by document store adapters."""

import copy
from typing import Any

from domain.value_objects.reference import iter_reference_ids

REFS_FIELD = "_refs"
STRONG_REFS_FIELD = "_strong_refs"
INDEX_FIELDS = (REFS_FIELD, STRONG_REFS_FIELD)
DRAFT_PREFIX = "drafts."


def is_draft(document_id: str) -> bool:
    return document_id.startswith(DRAFT_PREFIX)


def strip_index_fields(document: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in document.items() if key not in INDEX_FIELDS}


def with_reference_index(document: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``document`` carrying up-to-date ``_refs``/``_strong_refs`` arrays."""
    body = strip_index_fields(document)
    body[REFS_FIELD] = sorted(set(iter_reference_ids(body)))
    body[STRONG_REFS_FIELD] = sorted(set(iter_reference_ids(body, include_weak=False)))
    return body


def apply_patch(
    document: dict[str, Any],
    set_fields: dict[str, Any] | None = None,
    unset_fields: list[str] | tuple[str, ...] | None = None,
) -> dict[str, Any]:
    """Apply dotted-path ``set``/``unset`` operations to a copy of ``document``."""
    patched = copy.deepcopy(document)
    for path in unset_fields or ():
        *parents, leaf = path.split(".")
        container = patched
        for name in parents:
            container = container.get(name) if isinstance(container, dict) else None
        if isinstance(container, dict):
            container.pop(leaf, None)
    for path, value in (set_fields or {}).items():
        *parents, leaf = path.split(".")
        container = patched
        for name in parents:
            child = container.get(name)
            if not isinstance(child, dict):
                child = {}
                container[name] = child
            container = child
        container[leaf] = copy.deepcopy(value)
    return patched
