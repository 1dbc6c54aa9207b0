"""
Declarative request schemas for every endpoint.

Input models accept camelCase keys (``authorIds``, ``sortBy``) as well as the
snake_case field names.
"""

import re
from datetime import datetime
from typing import Annotated, List, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import (
    AfterValidator, BaseModel, ConfigDict, Field, StringConstraints,
    ValidationInfo, field_validator, model_validator
)
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from catalog.errors import ErrorMessages
from catalog.validation import RequestSchema

DEFAULT_PAGE_NUMBER = 1
DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 100
MAX_PAGE_NUMBER = 1_000_000

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128

OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")
ISBN_PATTERN = r"^(?:\d{10}|\d{13})$"

_PASSWORD_RULES = (
    (re.compile(r"[A-Z]"), "one uppercase letter (A-Z)"),
    (re.compile(r"[a-z]"), "one lowercase letter (a-z)"),
    (re.compile(r"\d"), "one digit (0-9)"),
    (re.compile(r"[@$!%*?&]"), "one special character (e.g., @, $, !, %, *, ?, &)"),
)


def check_object_id(value: str) -> str:
    if not OBJECT_ID_PATTERN.match(value):
        raise PydanticCustomError("invalid_id", ErrorMessages.INVALID_OBJECT_ID)
    return value


def check_email(value: str) -> str:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        raise PydanticCustomError("invalid_email", "Invalid email address format.")
    return value


ObjectIdStr = Annotated[str, AfterValidator(check_object_id)]
EmailAddress = Annotated[
    str,
    StringConstraints(strip_whitespace=True, to_lower=True, min_length=5, max_length=254),
    AfterValidator(check_email),
]
TrimmedStr = Annotated[str, StringConstraints(strip_whitespace=True)]
PersonName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=50)]
AuthorName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=100)]
AuthorBio = Annotated[str, StringConstraints(strip_whitespace=True, max_length=1000)]
BookTitle = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=200)]
Isbn = Annotated[str, StringConstraints(pattern=ISBN_PATTERN)]


class InputModel(BaseModel):
    """Lenient input: unknown fields are dropped."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def provided(self) -> dict:
        """Fields the client actually sent, keyed by field name."""
        return self.model_dump(exclude_unset=True)


class StrictInputModel(InputModel):
    """Strict input: unknown fields are rejected."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


def _reject_null(value, label: str):
    if value is None:
        raise PydanticCustomError("null_not_allowed", "{label} cannot be null.", {"label": label})
    return value


def _require_any_field(model: InputModel):
    if not model.model_fields_set:
        raise PydanticCustomError("no_update_data", ErrorMessages.NO_UPDATE_DATA)
    return model


# Auth

class RegisterUserBody(StrictInputModel):
    email: EmailAddress
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=MAX_PASSWORD_LENGTH)
    name: Optional[PersonName] = None

    @field_validator("password")
    @classmethod
    def validate_password_complexity(cls, v):
        missing = [label for pattern, label in _PASSWORD_RULES if not pattern.search(v)]
        if missing:
            raise PydanticCustomError(
                "password_complexity",
                "Password must include at least {requirements}.",
                {"requirements": ", ".join(missing)},
            )
        return v


class LoginUserBody(StrictInputModel):
    email: EmailAddress
    password: str = Field(..., min_length=1, max_length=MAX_PASSWORD_LENGTH)


# Authors

class CreateAuthorBody(InputModel):
    name: AuthorName
    bio: Optional[AuthorBio] = None


class UpdateAuthorBody(InputModel):
    name: Optional[AuthorName] = None
    bio: Optional[AuthorBio] = None

    @field_validator("name", mode="before")
    @classmethod
    def validate_name_not_null(cls, v):
        return _reject_null(v, "Author name")

    @model_validator(mode="after")
    def validate_has_changes(self):
        return _require_any_field(self)


# Books

class CreateBookBody(InputModel):
    title: BookTitle
    isbn: Optional[Isbn] = None
    published_date: Optional[datetime] = None
    author_ids: List[ObjectIdStr] = Field(..., min_length=1)


class UpdateBookBody(InputModel):
    title: Optional[BookTitle] = None
    isbn: Optional[Isbn] = None
    published_date: Optional[datetime] = None
    author_ids: Optional[List[ObjectIdStr]] = Field(None, min_length=1)

    @field_validator("title", "author_ids", mode="before")
    @classmethod
    def validate_not_null(cls, v, info: ValidationInfo):
        return _reject_null(v, "Book title" if info.field_name == "title" else "Author IDs")

    @model_validator(mode="after")
    def validate_has_changes(self):
        return _require_any_field(self)


# Shared query and path parameters

class PaginationQuery(InputModel):
    page: int = Field(DEFAULT_PAGE_NUMBER, ge=1, le=MAX_PAGE_NUMBER)
    limit: Optional[int] = Field(None, ge=1)
    sort_by: Optional[TrimmedStr] = None
    search: Optional[TrimmedStr] = None

    @field_validator("limit")
    @classmethod
    def validate_limit_ceiling(cls, v, info: ValidationInfo):
        ceiling = (info.context or {}).get("max_page_limit", MAX_PAGE_LIMIT)
        if v is not None and v > ceiling:
            raise PydanticCustomError(
                "less_than_equal", "Limit cannot exceed {max_limit}.", {"max_limit": ceiling}
            )
        return v

    @model_validator(mode="after")
    def apply_default_limit(self, info: ValidationInfo):
        if self.limit is None:
            self.limit = (info.context or {}).get("default_page_limit", DEFAULT_PAGE_LIMIT)
        return self


class BookListQuery(PaginationQuery):
    author_id: Optional[ObjectIdStr] = None


class IdPath(InputModel):
    id: ObjectIdStr


# Endpoint declarations

REGISTER = RequestSchema(body=RegisterUserBody)
LOGIN = RequestSchema(body=LoginUserBody)
CREATE_AUTHOR = RequestSchema(body=CreateAuthorBody)
UPDATE_AUTHOR = RequestSchema(body=UpdateAuthorBody, path=IdPath)
CREATE_BOOK = RequestSchema(body=CreateBookBody)
UPDATE_BOOK = RequestSchema(body=UpdateBookBody, path=IdPath)
LIST_RESOURCES = RequestSchema(query=PaginationQuery)
LIST_BOOKS = RequestSchema(query=BookListQuery)
RESOURCE_ID = RequestSchema(path=IdPath)
