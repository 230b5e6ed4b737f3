from pydantic import BaseModel, Field

from domain.value_objects.document_kind import DocumentKind


class ConflictReason(BaseModel):
    """One blocking category: what blocks, how many, and a few examples."""

    kind: DocumentKind
    category: str
    """Machine-readable category, e.g. ``unsubmitted_timesheets``."""

    count: int
    sample_names: list[str] = Field(default_factory=list)
    message: str
    """Line rendered to the user as-is."""

    model_config = {"frozen": True}


class ConflictReport(BaseModel):
    """Outcome of evaluating deletion rules against a scan.

    When ``blocking`` is true nothing may be written for this request.
    """

    target_id: str
    target_kind: DocumentKind
    blocking: bool
    error: str | None = None
    """Headline shown above ``details``."""

    reasons: list[ConflictReason] = Field(default_factory=list)
    suggestion: str | None = None

    model_config = {"frozen": True}

    @classmethod
    def clear(cls, target_id: str, target_kind: DocumentKind) -> "ConflictReport":
        return cls(target_id=target_id, target_kind=target_kind, blocking=False)

    @property
    def details(self) -> list[str]:
        return [reason.message for reason in self.reasons]

    def count_for(self, category: str) -> int:
        return sum(reason.count for reason in self.reasons if reason.category == category)
