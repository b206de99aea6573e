"""
Exception hierarchy for the knowledge engine.

Provides layered exception structure for domain-specific errors.
All exceptions include context for observability and debugging.

Dependencies: None (pure domain layer)
System role: Centralized exception handling across the application
"""

from typing import Any


class KnowledgeEngineException(Exception):
    """Base exception for all knowledge engine errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging

        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including details."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(KnowledgeEngineException):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Field name that failed validation
            details: Additional context
        """
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)


class EntryNotFoundError(KnowledgeEngineException):
    """Raised when a knowledge entry cannot be found."""

    def __init__(self, entry_id: Any, details: dict[str, Any] | None = None) -> None:
        """
        Initialize entry not found error.

        Args:
            entry_id: ID of the missing entry
            details: Additional context
        """
        details = details or {}
        details["entry_id"] = str(entry_id)
        self.entry_id = entry_id
        super().__init__(f"Knowledge entry not found: {entry_id}", details)


class EntryConflictError(KnowledgeEngineException):
    """Raised when an entry keeps changing underneath an update that is being prepared."""

    def __init__(self, entry_id: Any, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["entry_id"] = str(entry_id)
        self.entry_id = entry_id
        super().__init__(f"Knowledge entry was modified concurrently: {entry_id}", details)


class EmbeddingProviderError(KnowledgeEngineException):
    """
    Raised by a single embedding provider call.

    Never escapes the embedding gateway: the gateway logs it and moves on
    to the next provider.
    """

    def __init__(
        self,
        message: str,
        provider: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize provider error.

        Args:
            message: Error message
            provider: Provider name (voyage, openai, ...)
            status_code: HTTP status code when the provider answered
            details: Additional context
        """
        details = details or {}
        details["provider"] = provider
        if status_code is not None:
            details["status_code"] = status_code
        self.provider = provider
        self.status_code = status_code
        super().__init__(message, details)


class StorageError(KnowledgeEngineException):
    """Raised when a database query or transaction fails."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize storage error.

        Args:
            message: Error message
            operation: Operation that failed (create, update, delete, search)
            details: Additional context
        """
        details = details or {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details)
