"""Custom error types and error handling utilities."""

from typing import Optional, Dict, Any
from enum import Enum
import asyncio
import traceback
from datetime import datetime, timezone


class ErrorCategory(Enum):
    """Categories of errors for better handling."""
    VALIDATION = "validation"
    CACHE = "cache"
    RETRIEVAL = "retrieval"
    GENERATION = "generation"
    LOG = "log"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class ArtRAGError(Exception):
    """Base exception for pipeline errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
    ):
        """Initialize pipeline error."""
        super().__init__(message)
        self.message = message
        self.category = category
        self.details = details or {}
        self.recoverable = recoverable
        self.timestamp = datetime.now(timezone.utc)
        self.traceback = traceback.format_exc()

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/response."""
        return {
            "error": self.message,
            "category": self.category.value,
            "details": self.details,
            "recoverable": self.recoverable,
            "timestamp": self.timestamp.isoformat(),
            "traceback": self.traceback if self.details.get("include_traceback") else None
        }


class CacheBackendError(ArtRAGError):
    """A cache backend operation failed."""

    def __init__(self, message: str, backend: Optional[str] = None, operation: Optional[str] = None):
        details = {}
        if backend:
            details["backend"] = backend
        if operation:
            details["operation"] = operation

        super().__init__(
            message=message,
            category=ErrorCategory.CACHE,
            details=details,
            recoverable=True
        )


class BackendUnavailableError(CacheBackendError):
    """Connection-level failure of a cache backend.

    The response cache reacts to this by switching to its fallback store
    for the rest of the process lifetime.
    """


class RetrievalError(ArtRAGError):
    """Document search failed."""

    def __init__(self, message: str, query: Optional[str] = None):
        details = {}
        if query:
            details["query"] = query

        super().__init__(
            message=message,
            category=ErrorCategory.RETRIEVAL,
            details=details,
            recoverable=True
        )


class GenerationError(ArtRAGError):
    """Answer generation failed."""

    def __init__(self, message: str, model: Optional[str] = None):
        details = {}
        if model:
            details["model"] = model

        super().__init__(
            message=message,
            category=ErrorCategory.GENERATION,
            details=details,
            recoverable=True
        )


class PipelineTimeoutError(ArtRAGError):
    """The request deadline expired before the pipeline finished."""

    def __init__(self, message: str, timeout: Optional[float] = None, phase: Optional[str] = None):
        details = {}
        if timeout is not None:
            details["timeout"] = timeout
        if phase:
            details["phase"] = phase

        super().__init__(
            message=message,
            category=ErrorCategory.TIMEOUT,
            details=details,
            recoverable=True
        )


class LogWriteError(ArtRAGError):
    """An event log append, rotation or prune failed."""

    def __init__(self, message: str, path: Optional[str] = None):
        details = {}
        if path:
            details["path"] = path

        super().__init__(
            message=message,
            category=ErrorCategory.LOG,
            details=details,
            recoverable=True
        )


class ServiceNotInitializedError(Exception):
    """Raised when accessing a service that hasn't been initialized."""

    def __init__(self, service_name: str):
        super().__init__(f"Service '{service_name}' has not been initialized. "
                         f"Call container.initialize() first.")
        self.service_name = service_name


def categorize_error(error: Exception) -> ErrorCategory:
    """Categorize an exception for reporting."""
    if isinstance(error, ArtRAGError):
        return error.category

    if isinstance(error, asyncio.TimeoutError):
        return ErrorCategory.TIMEOUT

    error_str = str(error).lower()
    error_type = type(error).__name__.lower()

    if "timeout" in error_str or "timeout" in error_type:
        return ErrorCategory.TIMEOUT
    elif "redis" in error_type or "cache" in error_str:
        return ErrorCategory.CACHE
    elif isinstance(error, (ValueError, TypeError)) and "valid" in error_str:
        return ErrorCategory.VALIDATION

    return ErrorCategory.UNKNOWN
