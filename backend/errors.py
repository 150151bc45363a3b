"""Translate amx errors into HTTP errors."""

from fastapi import HTTPException

from amx.errors import (
    ConflictError,
    DistributionError,
    MatrixError,
    MediaFetchError,
    NotFoundError,
    PlatformConstraintError,
    RangeError,
    RenderSubmitError,
    ScoringError,
    UnknownPlatformError,
    ValidationError,
)

_STATUS_CODES: list[tuple[type[MatrixError], int]] = [
    (NotFoundError, 404),
    (ConflictError, 409),
    (UnknownPlatformError, 400),
    (ValidationError, 422),
    (RangeError, 422),
    (PlatformConstraintError, 422),
    (RenderSubmitError, 502),
    (MediaFetchError, 502),
    (DistributionError, 502),
    (ScoringError, 502),
]


def to_http(error: MatrixError) -> HTTPException:
    for error_type, status_code in _STATUS_CODES:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error)[:500])
    return HTTPException(status_code=400, detail=str(error)[:500])
