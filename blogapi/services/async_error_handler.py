"""
Error types and handlers for the engagement services.

Services raise the typed errors below and never build HTTP responses
themselves. The handlers registered by ``register_exception_handlers`` are the
only place where an error kind is mapped to a status code.
"""

import logging
from contextlib import asynccontextmanager
from functools import wraps
from typing import Any, Callable, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import UniqueConstraint
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.schemas.validation import FieldError, field_errors_from_pydantic

logger = logging.getLogger(__name__)


class BlogAPIError(Exception):
    """Base exception for engagement operations."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.message = message
        self.original_error = original_error
        super().__init__(self.message)


class NotFoundError(BlogAPIError):
    """The target entity does not exist."""


class UnauthorizedError(BlogAPIError):
    """The caller lacks permission over the target entity."""


class ConflictError(BlogAPIError):
    """Duplicate like/follow, or removing one that does not exist."""


class BadInputError(BlogAPIError):
    """Input failed validation."""

    def __init__(self, message: str, errors: Optional[List[FieldError]] = None):
        super().__init__(message)
        self.errors = errors or []


class UpstreamFailureError(BlogAPIError):
    """The store or the file system failed."""


class AsyncErrorHandler:
    """Maps error kinds to HTTP responses."""

    ERROR_MAPPINGS = {
        NotFoundError: status.HTTP_404_NOT_FOUND,
        UnauthorizedError: status.HTTP_401_UNAUTHORIZED,
        ConflictError: status.HTTP_409_CONFLICT,
        BadInputError: status.HTTP_400_BAD_REQUEST,
        UpstreamFailureError: status.HTTP_503_SERVICE_UNAVAILABLE,
    }

    @classmethod
    def status_code_for(cls, error: BlogAPIError) -> int:
        for exc_type, status_code in cls.ERROR_MAPPINGS.items():
            if isinstance(error, exc_type):
                return status_code
        return status.HTTP_500_INTERNAL_SERVER_ERROR

    @classmethod
    def to_payload(cls, error: BlogAPIError) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"detail": error.message}
        if isinstance(error, BadInputError):
            payload["errors"] = [e.model_dump() for e in error.errors]
        return payload

    @classmethod
    async def handle_blog_error(cls, request: Request, error: BlogAPIError) -> JSONResponse:
        status_code = cls.status_code_for(error)
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {error.message} ({error.original_error})")
        return JSONResponse(status_code=status_code, content=cls.to_payload(error))

    @classmethod
    async def handle_validation_error(cls, request: Request, error: RequestValidationError) -> JSONResponse:
        bad_input = BadInputError("Invalid request", field_errors_from_pydantic(error.errors()))
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=cls.to_payload(bad_input))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BlogAPIError, AsyncErrorHandler.handle_blog_error)
    app.add_exception_handler(RequestValidationError, AsyncErrorHandler.handle_validation_error)


def is_unique_violation(error: IntegrityError, model, constraint_name: str) -> bool:
    """
    Whether ``error`` was raised by the unique constraint ``constraint_name`` of ``model``.

    PostgreSQL reports the constraint name; SQLite reports the constrained columns.
    """
    message = str(error.orig)
    if constraint_name in message:
        return True

    table = model.__table__
    for constraint in table.constraints:
        if isinstance(constraint, UniqueConstraint) and constraint.name == constraint_name:
            columns = ", ".join(f"{table.name}.{column.name}" for column in constraint.columns)
            return f"UNIQUE constraint failed: {columns}" in message
    return False


# Decorator for automatic error handling
def handle_async_db_errors(operation_name: str = "database operation"):
    """
    Decorator converting store failures into ``UpstreamFailureError``.

    Typed engagement errors pass through untouched.
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except SQLAlchemyError as e:
                logger.error(f"Database error in {operation_name}: {e}")
                raise UpstreamFailureError(f"Database error during {operation_name}", original_error=e) from e
        return wrapper
    return decorator


@asynccontextmanager
async def async_transaction_rollback(db: AsyncSession):
    """
    Run the enclosed statements as one transaction.

    Commits on success; rolls back and re-raises on any error.

    Usage:
        async with async_transaction_rollback(db):
            db.add(like)
            await db.execute(update(Post)...)
    """
    try:
        yield db
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.debug(f"Transaction rolled back due to error: {e}")
        raise
