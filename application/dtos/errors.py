from typing import Any


class AppError:
    """Represents different categories of application errors."""

    def __init__(
        self,
        category: str,
        message: str,
        details: list[str] | None = None,
        suggestion: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        # 'validation', 'not_found', 'blocked', 'conflict', 'unauthorized',
        # 'forbidden', 'concurrency', 'infrastructure'
        self.category = category
        self.message = message
        self.details = details
        self.suggestion = suggestion
        self.extra = extra or {}

    def __str__(self) -> str:
        return self.message

    def to_body(self) -> dict[str, Any]:
        """Serialize to the ``{error, details?, suggestion?}`` response shape."""
        body: dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        if self.suggestion:
            body["suggestion"] = self.suggestion
        body.update(self.extra)
        return body
