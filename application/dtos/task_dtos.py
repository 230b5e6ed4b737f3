from enum import Enum

from pydantic import Field

from application.dtos.camel_model import CamelModel


class BulkTaskOperation(str, Enum):
    DELETE = "delete"
    ARCHIVE = "archive"


class BulkTaskRequest(CamelModel):
    # Validated by the use case so that bad payloads get the documented 400 messages.
    task_ids: list[str] | None = None
    operation: str | None = None


class BulkTaskResult(CamelModel):
    id: str
    status: str


class BulkTaskError(CamelModel):
    id: str
    error: str
    suggestion: str | None = None


class BulkTaskResponse(CamelModel):
    message: str
    results: list[BulkTaskResult] = Field(default_factory=list)
    errors: list[BulkTaskError] = Field(default_factory=list)
    success_count: int = 0
    error_count: int = 0


class TaskDeletedResponse(CamelModel):
    message: str = "Task deleted successfully"
