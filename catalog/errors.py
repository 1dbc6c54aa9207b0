"""
Error taxonomy for the catalog core.

Every failure the core reports is a CatalogError tagged with an ErrorKind.
The transport layer matches on the kind; it never inspects subclasses.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ErrorKind(str, Enum):
    """Stable, machine-checkable error kinds."""
    INVALID_INPUT = "invalid_input"
    UNAUTHENTICATED = "unauthenticated"
    TOKEN_INVALID = "token_invalid"
    STALE_TOKEN = "stale_token"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    ALREADY_FAVORITED = "already_favorited"
    NOT_IN_FAVORITES = "not_in_favorites"
    STORAGE_ERROR = "storage_error"
    CONFIGURATION_ERROR = "configuration_error"


class ErrorMessages:
    """User-facing messages shared across the core."""
    VALIDATION_ERROR = "Input validation failed. Please check your data."
    INVALID_OBJECT_ID = "Invalid Object ID format. Please provide a valid 24-character hex string."
    STORAGE_ERROR = "A database error occurred."

    USER_NOT_FOUND = "User not found."
    INVALID_CREDENTIALS = "Invalid email or password. Please try again."
    EMAIL_ALREADY_EXISTS = "An account with this email address already exists."
    UNAUTHENTICATED = "Not authenticated. Please log in to access this resource."
    UNAUTHORIZED_ACTION = "You are not authorized to perform this action."
    TOKEN_INVALID = "Authentication token is invalid, malformed, or has expired."
    USER_FOR_TOKEN_NOT_FOUND = "The user associated with this token no longer exists."
    EMPTY_PASSWORD = "Password cannot be empty for hashing."
    SIGNING_SECRET_MISSING = "Token signing failed: no signing secret is configured."

    AUTHOR_NOT_FOUND = "Author not found."
    BOOK_NOT_FOUND = "Book not found."
    CANNOT_DELETE_AUTHOR_WITH_BOOKS = (
        "Cannot delete author: This author is still associated with one or more books. "
        "Please remove book associations first."
    )
    ISBN_ALREADY_EXISTS = "ISBN already exists."
    NO_UPDATE_DATA = "No data provided for update. At least one field must be specified."

    @staticmethod
    def resource_not_found(resource: str = "Resource") -> str:
        return f"{resource} not found."

    @staticmethod
    def author_id_not_found(author_id: str) -> str:
        return f"Author with ID {author_id} not found."

    @staticmethod
    def already_in_favorites(item: str = "Item") -> str:
        return f"{item} is already in your favorites."

    @staticmethod
    def not_in_favorites(item: str = "Item") -> str:
        return f"{item} is not in your favorites to remove."


class FieldViolation(BaseModel):
    """A single field-level validation problem."""
    field: str = Field(..., description="Section-qualified dotted path, e.g. body.name")
    message: str = Field(..., description="Human-readable problem description")
    code: str = Field(..., description="Machine-readable problem code")


class CatalogError(Exception):
    """Tagged error raised by every catalog operation."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        violations: Optional[List[FieldViolation]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.violations = list(violations or [])
        self.details = dict(details or {})

    def __repr__(self) -> str:
        return f"CatalogError(kind={self.kind.value!r}, message={self.message!r})"

    @classmethod
    def invalid_input(cls, violations: List[FieldViolation], message: str = ErrorMessages.VALIDATION_ERROR):
        return cls(ErrorKind.INVALID_INPUT, message, violations=violations)

    @classmethod
    def not_found(cls, message: str = ErrorMessages.resource_not_found(), **details):
        return cls(ErrorKind.NOT_FOUND, message, details=details)

    @classmethod
    def forbidden(cls, message: str = ErrorMessages.UNAUTHORIZED_ACTION):
        return cls(ErrorKind.FORBIDDEN, message)

    @classmethod
    def conflict(cls, message: str, **details):
        return cls(ErrorKind.CONFLICT, message, details=details)

    @classmethod
    def storage(cls, message: str = ErrorMessages.STORAGE_ERROR):
        return cls(ErrorKind.STORAGE_ERROR, message)


class StorageConstraintError(Exception):
    """Raised by repositories when the store rejects a write on a constraint."""

    def __init__(self, constraint: str, message: str = ""):
        super().__init__(message or constraint)
        self.constraint = constraint


class ReferentialIntegrityError(StorageConstraintError):
    """The record is still referenced by another record."""


class UniqueConstraintError(StorageConstraintError):
    """A unique field already holds the written value."""
