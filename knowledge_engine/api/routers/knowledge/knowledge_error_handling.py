"""
Knowledge error handling utilities.

Provides a decorator for consistent error handling across knowledge API
endpoints: maps the engine's exception taxonomy to HTTP status codes and
logs each failure with structured context.
"""

import functools
import logging
from typing import Any, Callable, TypeVar

from fastapi import HTTPException, status
from pydantic import ValidationError as PydanticValidationError

from knowledge_engine.core.exceptions import (
    EntryConflictError,
    EntryNotFoundError,
    KnowledgeEngineException,
    StorageError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Type for the decorated function
F = TypeVar("F", bound=Callable[..., Any])


def handle_knowledge_errors(func: F) -> F:
    """
    Decorator to handle knowledge-related errors and transform them into HTTPExceptions.

    Mapping:
    - EntryNotFoundError -> 404
    - ValidationError -> 400
    - EntryConflictError -> 409
    - pydantic ValidationError -> 422
    - StorageError and anything unexpected -> 500 with a generic message
    """
    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)

        except HTTPException:
            raise

        except EntryNotFoundError as e:
            logger.warning(
                "Knowledge entry not found",
                extra={"entry_id": str(e.entry_id), "error": str(e)}
            )
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=e.message
            )

        except ValidationError as e:
            logger.warning(
                "Invalid knowledge request",
                extra={"error": str(e), "field": e.details.get("field")}
            )
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=e.message
            )

        except EntryConflictError as e:
            logger.warning(
                "Knowledge entry changed during update",
                extra={"entry_id": str(e.entry_id)}
            )
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=e.message
            )

        except PydanticValidationError as e:
            logger.warning("Pydantic validation error", extra={"error": str(e)})
            raise HTTPException(
                status_code=422,
                detail=e.errors()
            )

        except StorageError as e:
            logger.error(
                "Storage failure in knowledge operation",
                extra={"error": str(e), "cause": repr(e.__cause__)}
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="An internal error occurred while accessing knowledge storage"
            )

        except KnowledgeEngineException as e:
            logger.error("Knowledge operation failed", extra={"error": str(e)})
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="An internal error occurred during knowledge operation"
            )

        except Exception as e:
            logger.exception(
                "Unexpected failure in knowledge operation",
                extra={"error": str(e)}
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="An internal error occurred during knowledge operation"
            )

    return wrapper # type: ignore
