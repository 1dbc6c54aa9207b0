"""
Service container and request-scoped dependencies.
"""

import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import structlog
from fastapi import Depends, Request

from catalog.accounts import AccountService
from catalog.authentication import AuthenticationGate
from catalog.authors import AuthorService
from catalog.books import BookService
from catalog.credentials import CredentialCodec
from catalog.errors import CatalogError, FieldViolation
from catalog.favorites import FavoritesLedger
from catalog.listing import ListingEngine
from catalog.ownership import OwnershipPolicy
from catalog.repositories import AuthorRepository, BookRepository, FavoriteRepository, UserRepository
from catalog.validation import RequestSchema, ValidatedRequest, validate_request
from utilities.config import AppConfig

logger = structlog.get_logger(__name__)

MALFORMED_JSON = "Malformed JSON in request body."


@dataclass
class Services:
    """Everything a request handler needs, wired once at startup."""
    settings: AppConfig
    gate: AuthenticationGate
    accounts: AccountService
    authors: AuthorService
    books: BookService
    favorites: FavoritesLedger
    health_check: Optional[Callable[[], Awaitable[Dict[str, Any]]]] = None

    @property
    def validation_context(self) -> Dict[str, int]:
        return {
            "default_page_limit": self.settings.default_page_limit,
            "max_page_limit": self.settings.max_page_limit,
        }


def build_services(
    settings: AppConfig,
    users: UserRepository,
    authors: AuthorRepository,
    books: BookRepository,
    favorites: FavoriteRepository,
    health_check: Optional[Callable[[], Awaitable[Dict[str, Any]]]] = None,
) -> Services:
    """
    Wire the catalog services over a set of repositories.

    Args:
        settings: Application configuration
        users: User repository
        authors: Author repository
        books: Book repository
        favorites: Favorite edge repository
        health_check: Optional storage health check

    Returns:
        Services container
    """
    codec = CredentialCodec.from_config(settings)
    listing = ListingEngine()
    ownership = OwnershipPolicy()

    return Services(
        settings=settings,
        gate=AuthenticationGate(codec, users),
        accounts=AccountService(users, codec),
        authors=AuthorService(authors, favorites, listing, ownership),
        books=BookService(books, authors, favorites, listing, ownership),
        favorites=FavoritesLedger(favorites, authors, books, listing, ownership),
        health_check=health_check,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


async def read_json_body(request: Request) -> Any:
    """Parse the request body; an empty body reads as an empty object."""
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except ValueError:
        logger.info("Malformed JSON body", path=request.url.path)
        raise CatalogError.invalid_input(
            [FieldViolation(field="body", message=MALFORMED_JSON, code="json_invalid")],
            message=MALFORMED_JSON,
        )


class Validated:
    """
    Dependency running the validation pipeline for one endpoint.

    Usage:
        request_data: ValidatedRequest = Depends(Validated(CREATE_AUTHOR))
    """

    def __init__(self, schema: RequestSchema):
        self.schema = schema

    async def __call__(self, request: Request, services: Services = Depends(get_services)) -> ValidatedRequest:
        body = await read_json_body(request) if self.schema.body is not None else None
        return validate_request(
            self.schema,
            body=body,
            query=request.query_params,
            path=request.path_params,
            context=services.validation_context,
        )
