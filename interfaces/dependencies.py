"""FastAPI dependency injection integration with Lagom, plus caller identity."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from lagom import Container
from pydantic import BaseModel

from domain.value_objects.document_kind import ActorRole
from infrastructure.di.container import create_container


@lru_cache
def get_container() -> Container:
    """Get the DI container instance.

    Cached to ensure singleton behavior across requests.
    """
    return create_container()


class Actor(BaseModel):
    user_id: str
    role: ActorRole


def get_current_actor(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
) -> Actor:
    """Read the caller identity forwarded by the authenticating gateway."""
    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    try:
        role = ActorRole(x_user_role.strip().lower())
    except ValueError:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden") from None
    return Actor(user_id=x_user_id, role=role)


def require_admin(actor: Annotated[Actor, Depends(get_current_actor)]) -> Actor:
    if actor.role is not ActorRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return actor


def require_admin_or_manager(actor: Annotated[Actor, Depends(get_current_actor)]) -> Actor:
    if actor.role not in {ActorRole.ADMIN, ActorRole.MANAGER}:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return actor
