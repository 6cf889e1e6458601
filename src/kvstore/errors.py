"""Exception hierarchy for key-value storage errors.

Every backend operation raises a StorageError. Failures that are not already
classified are wrapped in UnexpectedStorageError with the original exception
chained as the cause.
"""

from contextlib import contextmanager
from typing import Any, Iterator, Optional, Sequence

from kvstore.observability.logging import get_logger

logger = get_logger(__name__)


class StorageError(Exception):
    """Base exception for all key-value storage errors.

    Attributes:
        message: Human-readable error description
        error_code: Unique code for programmatic error handling
        context: Additional context information
    """

    error_code: str = "STORAGE_ERROR"

    def __init__(self, message: str, **context: Any) -> None:
        """Initialize storage error with message and optional context.

        Args:
            message: Human-readable error description
            **context: Additional context information (namespace, operation, etc.)
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """Return formatted error message with context."""
        if not self.context:
            return f"[{self.error_code}] {self.message}"

        context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"[{self.error_code}] {self.message} ({context_str})"


class UnexpectedStorageError(StorageError):
    """Raised when a lower-level failure is not a recognized storage error.

    The original exception is kept on ``cause`` and chained as ``__cause__``.
    """

    error_code = "UNEXPECTED_STORAGE_ERROR"

    def __init__(self, message: str, cause: Optional[BaseException] = None, **context: Any) -> None:
        """Initialize with message and the wrapped exception.

        Args:
            message: Human-readable error description
            cause: The underlying exception
            **context: Additional context information
        """
        super().__init__(message, **context)
        self.cause = cause


class KeysNotFoundStorageError(StorageError):
    """Raised when a strict update targets keys that do not exist."""

    error_code = "KEYS_NOT_FOUND"

    def __init__(self, keys: Sequence[str], **context: Any) -> None:
        message = f"Keys not found: {', '.join(repr(key) for key in keys)}"
        super().__init__(message, **context)
        self.keys = list(keys)


class KeysAlreadyExistStorageError(StorageError):
    """Raised when a strict insert targets keys that already exist."""

    error_code = "KEYS_ALREADY_EXIST"

    def __init__(self, keys: Sequence[str], **context: Any) -> None:
        message = f"Keys already exist: {', '.join(repr(key) for key in keys)}"
        super().__init__(message, **context)
        self.keys = list(keys)


class TypeStorageError(StorageError):
    """Raised when a numeric operation is applied to a non-numeric stored value."""

    error_code = "TYPE_ERROR"

    def __init__(self, keys: Sequence[str], **context: Any) -> None:
        message = f"Stored values are not numbers: {', '.join(repr(key) for key in keys)}"
        super().__init__(message, **context)
        self.keys = list(keys)


@contextmanager
def translate_errors(operation: str, namespace: str) -> Iterator[None]:
    """Re-raise anything that is not a StorageError as UnexpectedStorageError.

    Args:
        operation: Name of the storage operation being executed
        namespace: Namespace the operation is bound to

    Raises:
        StorageError: Recognized storage errors, unchanged
        UnexpectedStorageError: Any other exception, chained to the original
    """
    try:
        yield
    except StorageError:
        raise
    except Exception as error:
        logger.warning(
            "unexpected_storage_error",
            operation=operation,
            namespace=namespace,
            error_type=type(error).__name__,
            error=str(error),
        )
        raise UnexpectedStorageError(
            f'Unexpected error "{error}" occurred',
            cause=error,
            operation=operation,
            namespace=namespace,
        ) from error
