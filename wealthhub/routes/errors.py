"""
Translation of service-layer exceptions into HTTP errors.

Every error body has the shape {"error": <code>, "details": <message>}.
"""

import logging

from fastapi import HTTPException, UploadFile, status
from postgrest.exceptions import APIError

from wealthhub.auth.policies import PolicyDenied
from wealthhub.services.balance_service import InsufficientBalance
from wealthhub.services.lifecycle import ConcurrentModification, InvalidTransition
from wealthhub.utils.constants import (
    PG_CHECK_VIOLATION,
    PG_FOREIGN_KEY_VIOLATION,
    PG_INSUFFICIENT_PRIVILEGE,
    PG_UNIQUE_VIOLATION,
)

logger = logging.getLogger(__name__)


def not_found(details: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"error": "not_found", "details": details}
    )


async def read_upload(upload: UploadFile) -> bytes:
    try:
        return await upload.read()
    except Exception as e:
        logger.error(f"Failed to read uploaded file: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "file_read_error", "details": "Could not read uploaded file"}
        )


def to_http_exception(exc: Exception, error: str, details: str) -> HTTPException:
    """
    Map a service exception to an HTTPException.

    Args:
        exc: The exception raised by the service call
        error: Error code used for unexpected failures (500)
        details: Message used for unexpected failures (500)
    """
    if isinstance(exc, HTTPException):
        return exc

    if isinstance(exc, PolicyDenied):
        logger.warning(f"Policy denied: {exc.reason}")
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": "forbidden", "details": exc.reason}
        )

    if isinstance(exc, ConcurrentModification):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"error": "concurrent_modification", "details": str(exc)}
        )

    if isinstance(exc, InsufficientBalance):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "insufficient_balance", "details": str(exc)}
        )

    if isinstance(exc, InvalidTransition):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_transition", "details": str(exc)}
        )

    if isinstance(exc, APIError):
        if exc.code == PG_UNIQUE_VIOLATION:
            return HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"error": "already_exists", "details": exc.message or "Record already exists"}
            )
        if exc.code == PG_CHECK_VIOLATION:
            return HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"error": "constraint_violation", "details": exc.message or "Invalid value"}
            )
        if exc.code == PG_FOREIGN_KEY_VIOLATION:
            return HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"error": "in_use", "details": "Record is referenced by other records"}
            )
        if exc.code == PG_INSUFFICIENT_PRIVILEGE:
            return HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"error": "forbidden", "details": "Row level security denied the request"}
            )
        logger.error(f"Database error ({exc.code}): {exc.message}", exc_info=True)
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": error, "details": details}
        )

    if isinstance(exc, ValueError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_request", "details": str(exc)}
        )

    logger.error(f"{details}: {exc}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": error, "details": details}
    )
