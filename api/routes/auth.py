"""
Registration, login and profile endpoints.
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from api.auth import current_user
from api.dependencies import Services, Validated, get_services
from api.models import SuccessResponse, render
from catalog.models import AuthContext
from catalog.schemas import LOGIN, REGISTER
from catalog.validation import ValidatedRequest

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/register", response_model=SuccessResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request_data: ValidatedRequest = Depends(Validated(REGISTER)),
    services: Services = Depends(get_services),
):
    """
    Create an account and return a bearer token.

    - **email**: Unique email address
    - **password**: 8-128 characters with upper, lower, digit and special character
    - **name**: Optional display name
    """
    result = await services.accounts.register(request_data.body)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=render(SuccessResponse(message="User registered successfully.", data=result)),
    )


@router.post("/login", response_model=SuccessResponse)
async def login(
    request_data: ValidatedRequest = Depends(Validated(LOGIN)),
    services: Services = Depends(get_services),
):
    """Exchange email and password for a bearer token."""
    result = await services.accounts.login(request_data.body)
    return JSONResponse(content=render(SuccessResponse(message="Login successful.", data=result)))


@router.get("/me", response_model=SuccessResponse)
async def me(
    ctx: AuthContext = Depends(current_user),
    services: Services = Depends(get_services),
):
    """Profile of the authenticated user."""
    profile = await services.accounts.me(ctx)
    return JSONResponse(content=render(SuccessResponse(data=profile)))
