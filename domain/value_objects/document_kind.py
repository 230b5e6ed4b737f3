from enum import Enum


class DocumentKind(str, Enum):
    """Enumerate the document kinds stored in the document store (`_type`)."""

    PERSON = "person"
    PROJECT = "project"
    TASK = "task"
    CLIENT = "client"
    TEAM = "team"
    REPORT = "report"
    TIMESHEET = "timesheet"

    def plural(self, count: int) -> str:
        """Return the label pluralised for ``count``."""
        return self.value if count == 1 else f"{self.value}s"


class TimesheetStatus(str, Enum):
    """Lifecycle states of a timesheet."""

    UNSUBMITTED = "unsubmitted"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"

    @classmethod
    def pending(cls) -> tuple["TimesheetStatus", ...]:
        """Statuses holding work that is not yet reconciled."""
        return (cls.UNSUBMITTED, cls.SUBMITTED)


class ActorRole(str, Enum):
    """Roles carried by the authenticated caller."""

    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"
