"""
The caller's favorite authors and books.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.auth import current_user
from api.dependencies import Services, Validated, get_services
from api.models import ListResponse, render
from catalog.models import AuthContext, ResourceKind
from catalog.schemas import LIST_RESOURCES
from catalog.validation import ValidatedRequest

router = APIRouter(prefix="/favorites", tags=["Favorites"])


@router.get("/authors", response_model=ListResponse)
async def list_favorite_authors(
    ctx: AuthContext = Depends(current_user),
    request_data: ValidatedRequest = Depends(Validated(LIST_RESOURCES)),
    services: Services = Depends(get_services),
):
    page = await services.favorites.list_favorites(ctx, ResourceKind.AUTHOR, request_data.query)
    return JSONResponse(content=render(ListResponse(data=page.items, meta=page.meta)))


@router.get("/books", response_model=ListResponse)
async def list_favorite_books(
    ctx: AuthContext = Depends(current_user),
    request_data: ValidatedRequest = Depends(Validated(LIST_RESOURCES)),
    services: Services = Depends(get_services),
):
    page = await services.favorites.list_favorites(ctx, ResourceKind.BOOK, request_data.query)
    return JSONResponse(content=render(ListResponse(data=page.items, meta=page.meta)))
