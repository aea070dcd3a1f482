"""
Exception hierarchy for Seconde.

    AppException
    ├── ConfigError
    │   └── ConfigFileNotFoundError
    ├── DatabaseError
    │   ├── ItemNotFoundError
    │   ├── EmbeddingMismatchError
    │   ├── CollectionError
    │   └── TransactionError
    ├── EncoderError
    │   ├── ModelLoadError
    │   └── EncodingError
    ├── ValidationError
    │   ├── InvalidInputError
    │   └── PermissionDeniedError
    └── CallableError

Keyword arguments other than ``code`` and ``context`` are kept in the
``context`` dict for logging; None values are dropped.

Example:
    >>> from seconde.utils.exceptions import ItemNotFoundError
    >>> raise ItemNotFoundError("Item not found", item_id="abc-123")
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Base exception for all Seconde application errors.

    Attributes:
        message: Human-readable error description.
        code: Error code for programmatic handling.
        context: Debugging details.
    """

    default_code: Optional[str] = None

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        **details: Any,
    ) -> None:
        self.message = message
        self.code = code or self.default_code or self._code_from_name()
        self.context = dict(context or {})
        self.context.update({key: value for key, value in details.items() if value is not None})
        super().__init__(self.message)

    def _code_from_name(self) -> str:
        # ItemNotFoundError -> ITEM_NOT_FOUND_ERROR
        name = self.__class__.__name__
        return "".join(f"_{c}" if c.isupper() and i else c for i, c in enumerate(name)).upper()

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "context": self.context,
        }


# Configuration

class ConfigError(AppException):
    pass


class ConfigFileNotFoundError(ConfigError):
    """Raised when the YAML configuration file is missing."""

    default_code = "CONFIG_FILE_NOT_FOUND"


# Storage

class DatabaseError(AppException):
    """Document store or embedding store failure."""


class ItemNotFoundError(DatabaseError):
    """
    An item, user, moment or party does not exist.

    Example:
        >>> raise ItemNotFoundError("Moment not found", item_id="rentree")
    """

    default_code = "ITEM_NOT_FOUND"

    def __init__(self, message: str = "Item not found", item_id: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, item_id=item_id, **kwargs)
        self.item_id = item_id


class EmbeddingMismatchError(DatabaseError):
    """
    A vector does not have the embedding store's dimension.

    Example:
        >>> raise EmbeddingMismatchError("Query dimension mismatch", expected=512, actual=768)
    """

    default_code = "EMBEDDING_MISMATCH"


class CollectionError(DatabaseError):
    default_code = "COLLECTION_ERROR"


class TransactionError(DatabaseError):
    """A transaction kept failing after its retry budget."""

    default_code = "TRANSACTION_FAILED"


# Image embedding model

class EncoderError(AppException):
    pass


class ModelLoadError(EncoderError):
    default_code = "MODEL_LOAD"


class EncodingError(EncoderError):
    default_code = "ENCODING_ERROR"


# Input validation

class ValidationError(AppException):
    pass


class InvalidInputError(ValidationError):
    """Raised when caller input is invalid."""

    default_code = "INVALID_INPUT"

    def __init__(self, message: str = "Invalid input", value: Any = None, **kwargs: Any) -> None:
        if value is not None:
            value = str(value)[:100]
        super().__init__(message, value=value, **kwargs)


class PermissionDeniedError(ValidationError):
    """An authenticated caller may not touch a resource."""

    default_code = "PERMISSION_DENIED"


# Caller-facing errors

class ErrorKind(str, Enum):
    """Stable error kinds surfaced by the callable entry points."""

    NOT_FOUND = "not-found"
    UNAUTHENTICATED = "unauthenticated"
    PERMISSION_DENIED = "permission-denied"
    INVALID_ARGUMENT = "invalid-argument"
    DEADLINE_EXCEEDED = "deadline-exceeded"
    INTERNAL = "internal"


class CallableError(AppException):
    """
    Error returned to callers of the entry points.

    Only the kind and the message cross the boundary; the original
    exception is kept as ``__cause__`` for logging.

    Example:
        >>> raise CallableError(ErrorKind.NOT_FOUND, "Moment not found")
    """

    def __init__(self, kind: ErrorKind, message: str, **kwargs: Any) -> None:
        self.kind = kind
        super().__init__(message, code=kind.value.upper().replace("-", "_"), **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the wire shape returned to clients."""
        return {"code": self.kind.value, "message": self.message}
