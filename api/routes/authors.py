"""
Author endpoints. Every route requires a bearer token and acts only on
authors the caller created.
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from api.auth import current_user
from api.dependencies import Services, Validated, get_services
from api.models import ListResponse, SuccessResponse, render
from catalog.models import AuthContext, ResourceKind
from catalog.schemas import CREATE_AUTHOR, LIST_RESOURCES, RESOURCE_ID, UPDATE_AUTHOR
from catalog.validation import ValidatedRequest

router = APIRouter(prefix="/authors", tags=["Authors"])


@router.post("", response_model=SuccessResponse, status_code=status.HTTP_201_CREATED)
async def create_author(
    ctx: AuthContext = Depends(current_user),
    request_data: ValidatedRequest = Depends(Validated(CREATE_AUTHOR)),
    services: Services = Depends(get_services),
):
    author = await services.authors.create(ctx, request_data.body)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=render(SuccessResponse(message="Author created successfully.", data=author)),
    )


@router.get("", response_model=ListResponse)
async def list_authors(
    ctx: AuthContext = Depends(current_user),
    request_data: ValidatedRequest = Depends(Validated(LIST_RESOURCES)),
    services: Services = Depends(get_services),
):
    """
    List the caller's authors.

    - **page**: Page number (starts from 1)
    - **limit**: Items per page
    - **sortBy**: ``name|bio|createdAt|updatedAt`` with ``:asc`` or ``:desc``
    - **search**: Case-insensitive match on name or bio
    """
    page = await services.authors.list(ctx, request_data.query)
    return JSONResponse(content=render(ListResponse(data=page.items, meta=page.meta)))


@router.get("/{id}", response_model=SuccessResponse)
async def get_author(
    ctx: AuthContext = Depends(current_user),
    request_data: ValidatedRequest = Depends(Validated(RESOURCE_ID)),
    services: Services = Depends(get_services),
):
    author = await services.authors.get(ctx, request_data.path.id)
    return JSONResponse(content=render(SuccessResponse(data=author)))


@router.patch("/{id}", response_model=SuccessResponse)
async def update_author(
    ctx: AuthContext = Depends(current_user),
    request_data: ValidatedRequest = Depends(Validated(UPDATE_AUTHOR)),
    services: Services = Depends(get_services),
):
    author = await services.authors.update(ctx, request_data.path.id, request_data.body)
    return JSONResponse(content=render(SuccessResponse(message="Author updated successfully.", data=author)))


@router.delete("/{id}", response_model=SuccessResponse)
async def delete_author(
    ctx: AuthContext = Depends(current_user),
    request_data: ValidatedRequest = Depends(Validated(RESOURCE_ID)),
    services: Services = Depends(get_services),
):
    await services.authors.delete(ctx, request_data.path.id)
    return JSONResponse(content=render(SuccessResponse(message="Author deleted successfully.", data=None)))


@router.post("/{id}/favorite", response_model=SuccessResponse)
async def add_favorite_author(
    ctx: AuthContext = Depends(current_user),
    request_data: ValidatedRequest = Depends(Validated(RESOURCE_ID)),
    services: Services = Depends(get_services),
):
    await services.favorites.add(ctx, ResourceKind.AUTHOR, request_data.path.id)
    return JSONResponse(
        content=render(SuccessResponse(message="Author added to favorites successfully."), keep=())
    )


@router.delete("/{id}/favorite", response_model=SuccessResponse)
async def remove_favorite_author(
    ctx: AuthContext = Depends(current_user),
    request_data: ValidatedRequest = Depends(Validated(RESOURCE_ID)),
    services: Services = Depends(get_services),
):
    await services.favorites.remove(ctx, ResourceKind.AUTHOR, request_data.path.id)
    return JSONResponse(
        content=render(SuccessResponse(message="Author removed from favorites successfully."), keep=())
    )
