"""
Book endpoints. Every route requires a bearer token and acts only on books
the caller created.
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from api.auth import current_user
from api.dependencies import Services, Validated, get_services
from api.models import ListResponse, SuccessResponse, render
from catalog.models import AuthContext, ResourceKind
from catalog.schemas import CREATE_BOOK, LIST_BOOKS, RESOURCE_ID, UPDATE_BOOK
from catalog.validation import ValidatedRequest

router = APIRouter(prefix="/books", tags=["Books"])


@router.post("", response_model=SuccessResponse, status_code=status.HTTP_201_CREATED)
async def create_book(
    ctx: AuthContext = Depends(current_user),
    request_data: ValidatedRequest = Depends(Validated(CREATE_BOOK)),
    services: Services = Depends(get_services),
):
    """
    Create a book.

    - **title**: 2-200 characters
    - **isbn**: Optional 10 or 13 digits, unique across all books
    - **publishedDate**: Optional ISO date
    - **authorIds**: One or more existing author ids
    """
    book = await services.books.create(ctx, request_data.body)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=render(SuccessResponse(message="Book created successfully.", data=book)),
    )


@router.get("", response_model=ListResponse)
async def list_books(
    ctx: AuthContext = Depends(current_user),
    request_data: ValidatedRequest = Depends(Validated(LIST_BOOKS)),
    services: Services = Depends(get_services),
):
    """
    List the caller's books.

    - **page**, **limit**: Pagination
    - **sortBy**: ``title|isbn|publishedDate|createdAt|updatedAt`` with ``:asc`` or ``:desc``
    - **search**: Case-insensitive match on title or ISBN
    - **authorId**: Only books written by this author
    """
    page = await services.books.list(ctx, request_data.query)
    return JSONResponse(content=render(ListResponse(data=page.items, meta=page.meta)))


@router.get("/{id}", response_model=SuccessResponse)
async def get_book(
    ctx: AuthContext = Depends(current_user),
    request_data: ValidatedRequest = Depends(Validated(RESOURCE_ID)),
    services: Services = Depends(get_services),
):
    book = await services.books.get(ctx, request_data.path.id)
    return JSONResponse(content=render(SuccessResponse(data=book)))


@router.patch("/{id}", response_model=SuccessResponse)
async def update_book(
    ctx: AuthContext = Depends(current_user),
    request_data: ValidatedRequest = Depends(Validated(UPDATE_BOOK)),
    services: Services = Depends(get_services),
):
    book = await services.books.update(ctx, request_data.path.id, request_data.body)
    return JSONResponse(content=render(SuccessResponse(message="Book updated successfully.", data=book)))


@router.delete("/{id}", response_model=SuccessResponse)
async def delete_book(
    ctx: AuthContext = Depends(current_user),
    request_data: ValidatedRequest = Depends(Validated(RESOURCE_ID)),
    services: Services = Depends(get_services),
):
    await services.books.delete(ctx, request_data.path.id)
    return JSONResponse(content=render(SuccessResponse(message="Book deleted successfully.", data=None)))


@router.post("/{id}/favorite", response_model=SuccessResponse)
async def add_favorite_book(
    ctx: AuthContext = Depends(current_user),
    request_data: ValidatedRequest = Depends(Validated(RESOURCE_ID)),
    services: Services = Depends(get_services),
):
    await services.favorites.add(ctx, ResourceKind.BOOK, request_data.path.id)
    return JSONResponse(
        content=render(SuccessResponse(message="Book added to favorites successfully."), keep=())
    )


@router.delete("/{id}/favorite", response_model=SuccessResponse)
async def remove_favorite_book(
    ctx: AuthContext = Depends(current_user),
    request_data: ValidatedRequest = Depends(Validated(RESOURCE_ID)),
    services: Services = Depends(get_services),
):
    await services.favorites.remove(ctx, ResourceKind.BOOK, request_data.path.id)
    return JSONResponse(
        content=render(SuccessResponse(message="Book removed from favorites successfully."), keep=())
    )
