"""
Bearer token authentication for the FastAPI API.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from api.dependencies import Services, get_services
from catalog.models import AuthContext

# Documents the scheme in OpenAPI; the gate does the actual checking
security = HTTPBearer(auto_error=False)


async def current_user(
    request: Request,
    services: Services = Depends(get_services),
    _credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthContext:
    """
    Resolve the caller from the Authorization header.

    Raises:
        CatalogError: UNAUTHENTICATED, TOKEN_INVALID or STALE_TOKEN
    """
    return await services.gate.authenticate(request.headers.get("Authorization"))
