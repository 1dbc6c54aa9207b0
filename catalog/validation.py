"""
Request validation pipeline.

Parses the body, query and path sections of a request against a declared
schema, coercing values before constraints are checked. All violations across
the three sections are collected and reported together.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Type

import structlog
from pydantic import BaseModel, ValidationError

from catalog.errors import CatalogError, FieldViolation

logger = structlog.get_logger(__name__)

SECTIONS = ("body", "query", "path")


@dataclass(frozen=True)
class RequestSchema:
    """Per-endpoint declaration of the models each request section must satisfy."""
    body: Optional[Type[BaseModel]] = None
    query: Optional[Type[BaseModel]] = None
    path: Optional[Type[BaseModel]] = None


@dataclass(frozen=True)
class ValidatedRequest:
    """Coerced request sections; undeclared sections are passed through as given."""
    body: Any = None
    query: Any = None
    path: Any = None


def _field_path(section: str, loc: tuple) -> str:
    dotted = ".".join(str(part) for part in loc)
    return f"{section}.{dotted}" if dotted else section


def violations_from(section: str, exc: ValidationError) -> List[FieldViolation]:
    """Flatten a pydantic ValidationError into section-qualified violations."""
    return [
        FieldViolation(
            field=_field_path(section, error["loc"]),
            message=error["msg"],
            code=error["type"],
        )
        for error in exc.errors(include_url=False)
    ]


def validate_request(
    schema: RequestSchema,
    body: Any = None,
    query: Optional[Mapping[str, Any]] = None,
    path: Optional[Mapping[str, Any]] = None,
    context: Optional[Dict[str, Any]] = None,
) -> ValidatedRequest:
    """
    Validate and coerce every declared section of a request.

    Args:
        schema: Models declared for the endpoint
        body: Parsed request body
        query: Query-string parameters
        path: Path parameters
        context: Validation context handed to the models (page limits)

    Returns:
        ValidatedRequest with coerced models in place of the raw maps

    Raises:
        CatalogError: INVALID_INPUT carrying every violation found
    """
    raw = {"body": body, "query": dict(query or {}), "path": dict(path or {})}
    parsed: Dict[str, Any] = {}
    violations: List[FieldViolation] = []

    for section in SECTIONS:
        model = getattr(schema, section)
        if model is None:
            parsed[section] = raw[section]
            continue
        try:
            parsed[section] = model.model_validate(raw[section], context=context)
        except ValidationError as e:
            violations.extend(violations_from(section, e))

    if violations:
        logger.info(
            "Request validation failed",
            fields=[violation.field for violation in violations],
        )
        raise CatalogError.invalid_input(violations)

    return ValidatedRequest(**parsed)
