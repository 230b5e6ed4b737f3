"""Error handling for API routes: use case results in, HTTP responses out."""

import functools
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from returns.result import Failure, Success
from starlette.exceptions import HTTPException as StarletteHTTPException

from domain.exceptions import EntityNotFoundError, InfrastructureError, ReferenceConflictError

logger = structlog.get_logger()


def handle_use_case_errors[T_co](
    func: Callable[..., Awaitable[T_co]],
) -> Callable[..., Awaitable[T_co]]:
    """Turn a route returning a use case ``Result`` into a plain FastAPI route.

    ``Success`` is unwrapped, ``Failure`` is mapped to an ``HTTPException``
    carrying the error body. Domain exceptions that escape a use case are
    mapped as well; anything else is logged and becomes a 500.
    """

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T_co:  # noqa: ANN401
        try:
            result = await func(*args, **kwargs)
        except HTTPException:
            raise
        except EntityNotFoundError as exc:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=str(exc),
            ) from exc
        except ReferenceConflictError as exc:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"error": str(exc), "referencingIds": exc.referencing_ids},
            ) from exc
        except InfrastructureError as exc:
            logger.exception(
                "infrastructure_error",
                error=str(exc),
                function=func.__name__,
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Service temporarily unavailable",
            ) from exc
        except Exception as exc:
            logger.exception(
                "unexpected_error",
                error=str(exc),
                error_type=type(exc).__name__,
                function=func.__name__,
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error",
            ) from exc

        if isinstance(result, Success):
            return result.unwrap()
        if isinstance(result, Failure):
            # Deferred: importing routes at module load would cycle back into this module.
            from interfaces.api.routes.helpers import _map_app_error_to_http_exception

            error = result.failure()
            logger.info("use_case_failed", category=error.category, function=func.__name__)
            raise _map_app_error_to_http_exception(error) from None
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unexpected result type",
        )

    return wrapper


async def http_exception_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render dict details as the response body and string details as ``{"error": ...}``."""
    body = exc.detail if isinstance(exc.detail, dict) else {"error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)
