from fastapi import HTTPException, status

from application.dtos.errors import AppError

_STATUS_BY_CATEGORY = {
    "validation": status.HTTP_400_BAD_REQUEST,
    "blocked": status.HTTP_400_BAD_REQUEST,
    "unauthorized": status.HTTP_401_UNAUTHORIZED,
    "forbidden": status.HTTP_403_FORBIDDEN,
    "not_found": status.HTTP_404_NOT_FOUND,
    "conflict": status.HTTP_409_CONFLICT,
    "concurrency": status.HTTP_409_CONFLICT,
    "infrastructure": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _map_app_error_to_http_exception(error: AppError) -> HTTPException:
    """Map application layer errors to appropriate HTTP exceptions.

    The detail is the full error body so conflict responses keep their
    ``details``/``suggestion`` fields.
    """
    status_code = _STATUS_BY_CATEGORY.get(error.category)
    if status_code is None:
        # Unknown error category
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )
    return HTTPException(status_code=status_code, detail=error.to_body())
