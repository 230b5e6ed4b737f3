from typing import Any, Literal

from pydantic import BaseModel, Field


class PatchMutation(BaseModel):
    """Set and/or unset fields on a single document."""

    op: Literal["patch"] = "patch"
    document_id: str
    set: dict[str, Any] = Field(default_factory=dict)
    unset: tuple[str, ...] = ()

    model_config = {"frozen": True}

    @property
    def is_empty(self) -> bool:
        return not self.set and not self.unset


class DeleteMutation(BaseModel):
    """Delete a single document."""

    op: Literal["delete"] = "delete"
    document_id: str

    model_config = {"frozen": True}


Mutation = PatchMutation | DeleteMutation
