"""
Listing engine shared by every collection endpoint.

Turns page, limit, sortBy, search and hard scoping filters into a
deterministic paginated result with metadata.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol, Tuple

import structlog

from catalog.models import ListingQuery, Page, PageMeta, ResourceKind, SortDirection

logger = structlog.get_logger(__name__)

DEFAULT_SORT: Tuple[str, SortDirection] = ("created_at", SortDirection.DESC)
# Breaks ties between records sharing a sort value so page boundaries are stable
TIEBREAK_FIELD = "id"


@dataclass(frozen=True)
class ListingProfile:
    """Sortable and searchable fields of one resource type, keyed by API name."""
    sortable: Mapping[str, str]
    searchable: Tuple[str, ...]


LISTING_PROFILES: Dict[ResourceKind, ListingProfile] = {
    ResourceKind.AUTHOR: ListingProfile(
        sortable={
            "name": "name",
            "bio": "bio",
            "createdAt": "created_at",
            "updatedAt": "updated_at",
        },
        searchable=("name", "bio"),
    ),
    ResourceKind.BOOK: ListingProfile(
        sortable={
            "title": "title",
            "isbn": "isbn",
            "publishedDate": "published_date",
            "createdAt": "created_at",
            "updatedAt": "updated_at",
        },
        searchable=("title", "isbn"),
    ),
}


class ListableRepository(Protocol):

    async def find_many(self, query: ListingQuery) -> list: ...

    async def count(self, query: ListingQuery) -> int: ...


def parse_sort(sort_by: Optional[str], profile: ListingProfile) -> Tuple[str, SortDirection]:
    """
    Resolve ``"<field>:<asc|desc>"`` against the allow-list.

    Anything unrecognised falls back to newest first; this never raises.
    """
    if not sort_by:
        return DEFAULT_SORT
    field_name, _, direction = sort_by.partition(":")
    storage_field = profile.sortable.get(field_name.strip())
    if storage_field is None:
        return DEFAULT_SORT
    try:
        return storage_field, SortDirection(direction.strip().lower())
    except ValueError:
        return DEFAULT_SORT


def compute_meta(total_items: int, item_count: int, page: int, limit: int) -> PageMeta:
    total_pages = math.ceil(total_items / limit) if limit > 0 else 0
    return PageMeta(
        total_items=total_items,
        item_count=item_count,
        items_per_page=limit,
        total_pages=total_pages,
        current_page=page,
    )


def empty_page(page: int, limit: int) -> Page:
    return Page(items=[], meta=compute_meta(0, 0, page, limit))


class ListingEngine:
    """Builds list queries and runs them against a repository."""

    def __init__(self, profiles: Mapping[ResourceKind, ListingProfile] = LISTING_PROFILES):
        self.profiles = profiles

    def build_query(
        self,
        kind: ResourceKind,
        page: int,
        limit: int,
        sort_by: Optional[str] = None,
        search: Optional[str] = None,
        scope: Optional[Dict[str, Any]] = None,
        ids_in: Optional[Iterable[str]] = None,
        contains: Optional[Dict[str, Any]] = None,
    ) -> ListingQuery:
        """
        Build the storage-neutral query for one page.

        Args:
            kind: Resource type being listed
            page: 1-based page number
            limit: Page size
            sort_by: Optional ``"<field>:<asc|desc>"``
            search: Optional free-text term
            scope: Hard equality filters (e.g. ``created_by_id``)
            ids_in: Optional hard id membership filter
            contains: Hard array-membership filters (e.g. ``author_ids``)

        Returns:
            ListingQuery ready for a repository
        """
        profile = self.profiles[kind]
        sort_field, direction = parse_sort(sort_by, profile)
        term = search.strip() if search else None

        return ListingQuery(
            scope=dict(scope or {}),
            ids_in=tuple(ids_in) if ids_in is not None else None,
            contains=dict(contains or {}),
            search=term or None,
            search_fields=profile.searchable if term else (),
            sort=((sort_field, direction), (TIEBREAK_FIELD, direction)),
            skip=max(page - 1, 0) * limit,
            limit=limit,
        )

    async def list(
        self,
        repository: ListableRepository,
        kind: ResourceKind,
        page: int,
        limit: int,
        sort_by: Optional[str] = None,
        search: Optional[str] = None,
        scope: Optional[Dict[str, Any]] = None,
        ids_in: Optional[Iterable[str]] = None,
        contains: Optional[Dict[str, Any]] = None,
    ) -> Page:
        """Run the page query and the count query with the same filter."""
        query = self.build_query(
            kind, page, limit,
            sort_by=sort_by, search=search, scope=scope, ids_in=ids_in, contains=contains,
        )
        items = await repository.find_many(query)
        total_items = await repository.count(query)

        logger.debug(
            "Listed resources",
            kind=kind.value,
            page=page,
            limit=limit,
            total_items=total_items,
            item_count=len(items),
        )
        return Page(items=items, meta=compute_meta(total_items, len(items), page, limit))
