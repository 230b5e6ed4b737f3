"""Static registry of who references whom.

The store enforces no foreign keys, so every (target kind -> holder field)
edge the cascade engine knows about is declared here. Supporting a new
dependent field is a one-entry change to this module.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from domain.value_objects.document_kind import DocumentKind, TimesheetStatus
from domain.value_objects.document_query import Condition
from domain.value_objects.field_path import FieldPath


class OnDelete(str, Enum):
    """What happens to a holder when its target is deleted."""

    BLOCK = "block"
    DETACH = "detach"
    DELETE_HOLDER = "delete_holder"


class ReferenceEdge(BaseModel):
    """A field on ``holder_kind`` documents that may reference a ``target_kind`` document."""

    target_kind: DocumentKind
    holder_kind: DocumentKind
    field_path: FieldPath | None
    """``None`` means "any reference anywhere in the holder"."""

    on_delete: OnDelete
    scope: tuple[Condition, ...] = ()
    """Extra conditions narrowing which holders are relevant."""

    model_config = {"frozen": True}

    @property
    def path_label(self) -> str:
        return str(self.field_path) if self.field_path else "*"


class CleanupStage(BaseModel):
    """A named step of the person cascade. Stages run strictly in declaration order."""

    name: str
    holder_kind: DocumentKind
    edges: tuple[ReferenceEdge, ...]
    action: OnDelete

    model_config = {"frozen": True}


def _edge(
    target: DocumentKind,
    holder: DocumentKind,
    path: str | None,
    on_delete: OnDelete,
    scope: tuple[Condition, ...] = (),
) -> ReferenceEdge:
    return ReferenceEdge(
        target_kind=target,
        holder_kind=holder,
        field_path=FieldPath.of(path) if path else None,
        on_delete=on_delete,
        scope=scope,
    )


_NOT_APPROVED = (Condition.ne("status", TimesheetStatus.APPROVED.value),)

K = DocumentKind

# person
TIMESHEET_USER = _edge(K.PERSON, K.TIMESHEET, "user", OnDelete.DELETE_HOLDER)
TIMESHEET_APPROVED_BY = _edge(K.PERSON, K.TIMESHEET, "approvedBy", OnDelete.DETACH)
PROJECT_ASSIGNED_USERS = _edge(K.PERSON, K.PROJECT, "assignedUsers[].user", OnDelete.DETACH)
PROJECT_MANAGER = _edge(K.PERSON, K.PROJECT, "projectManager", OnDelete.DETACH)
TEAM_MEMBERS = _edge(K.PERSON, K.TEAM, "members[]", OnDelete.DETACH)
TEAM_MANAGER = _edge(K.PERSON, K.TEAM, "manager", OnDelete.DETACH)
PERSON_PINNED_BY = _edge(K.PERSON, K.PERSON, "pinnedBy[]", OnDelete.DETACH)
REPORT_CREATED_BY = _edge(K.PERSON, K.REPORT, "createdBy", OnDelete.DETACH)
REPORT_FILTER_USERS = _edge(K.PERSON, K.REPORT, "filters.users[]", OnDelete.DETACH)

# task
PROJECT_TASKS = _edge(K.TASK, K.PROJECT, "tasks[]", OnDelete.BLOCK)
TIMESHEET_ENTRY_TASK = _edge(K.TASK, K.TIMESHEET, "entries[].task", OnDelete.BLOCK, _NOT_APPROVED)

# project
TIMESHEET_ENTRY_PROJECT = _edge(
    K.PROJECT,
    K.TIMESHEET,
    "entries[].project",
    OnDelete.BLOCK,
    _NOT_APPROVED,
)
TASK_ANY_REFERENCE = _edge(K.PROJECT, K.TASK, None, OnDelete.BLOCK)

# client
PROJECT_CLIENT = _edge(K.CLIENT, K.PROJECT, "client", OnDelete.BLOCK)


REFERENCE_REGISTRY: dict[DocumentKind, tuple[ReferenceEdge, ...]] = {
    DocumentKind.PERSON: (
        TIMESHEET_USER,
        TIMESHEET_APPROVED_BY,
        PROJECT_ASSIGNED_USERS,
        PROJECT_MANAGER,
        TEAM_MEMBERS,
        TEAM_MANAGER,
        PERSON_PINNED_BY,
        REPORT_CREATED_BY,
        REPORT_FILTER_USERS,
    ),
    DocumentKind.TASK: (PROJECT_TASKS, TIMESHEET_ENTRY_TASK),
    DocumentKind.PROJECT: (TIMESHEET_ENTRY_PROJECT, TASK_ANY_REFERENCE),
    DocumentKind.CLIENT: (PROJECT_CLIENT,),
}

PERSON_CLEANUP_STAGES: tuple[CleanupStage, ...] = (
    CleanupStage(
        name="clear_approved_by",
        holder_kind=K.TIMESHEET,
        edges=(TIMESHEET_APPROVED_BY,),
        action=OnDelete.DETACH,
    ),
    # `user` is mandatory on a timesheet: the person's own timesheets are destroyed.
    CleanupStage(
        name="delete_own_timesheets",
        holder_kind=K.TIMESHEET,
        edges=(TIMESHEET_USER,),
        action=OnDelete.DELETE_HOLDER,
    ),
    CleanupStage(
        name="detach_from_projects",
        holder_kind=K.PROJECT,
        edges=(PROJECT_ASSIGNED_USERS, PROJECT_MANAGER),
        action=OnDelete.DETACH,
    ),
    CleanupStage(
        name="detach_from_teams",
        holder_kind=K.TEAM,
        edges=(TEAM_MEMBERS, TEAM_MANAGER),
        action=OnDelete.DETACH,
    ),
    CleanupStage(
        name="unpin_from_people",
        holder_kind=K.PERSON,
        edges=(PERSON_PINNED_BY,),
        action=OnDelete.DETACH,
    ),
    CleanupStage(
        name="detach_from_reports",
        holder_kind=K.REPORT,
        edges=(REPORT_CREATED_BY, REPORT_FILTER_USERS),
        action=OnDelete.DETACH,
    ),
)


def edges_for(target_kind: DocumentKind) -> tuple[ReferenceEdge, ...]:
    """Edges that must be scanned before deleting a ``target_kind`` document."""
    try:
        return REFERENCE_REGISTRY[target_kind]
    except KeyError:
        msg = f"Deleting {target_kind.value} documents is not supported"
        raise ValueError(msg) from None


def cleanup_stages_for(target_kind: DocumentKind) -> tuple[CleanupStage, ...]:
    """Ordered cleanup stages; only people get surgical cleanup."""
    if target_kind is DocumentKind.PERSON:
        return PERSON_CLEANUP_STAGES
    return ()
