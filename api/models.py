"""
Response envelopes for the FastAPI application.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from catalog.errors import FieldViolation
from catalog.models import PageMeta


class SuccessResponse(BaseModel):
    """Envelope for single-resource and action responses."""
    status: str = Field("success", description="Always 'success'")
    message: Optional[str] = Field(None, description="Human-readable outcome")
    data: Any = Field(None, description="Resource payload")


class ListResponse(BaseModel):
    """Envelope for paginated collections."""
    status: str = Field("success", description="Always 'success'")
    data: List[Any] = Field(..., description="Items on this page")
    meta: PageMeta = Field(..., description="Pagination metadata")


class ErrorResponse(BaseModel):
    """Error response model."""
    status: str = Field(..., description="'fail' for client errors, 'error' for server errors")
    message: str = Field(..., description="Error message")
    errors: Optional[List[FieldViolation]] = Field(None, description="Field-level validation problems")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Check timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")


def render(envelope: BaseModel, keep: tuple = ("data",)) -> Dict[str, Any]:
    """
    Serialize an envelope with camelCase payload keys.

    Top-level fields that are None are dropped, except those named in keep.
    """
    content = envelope.model_dump(mode="json", by_alias=True)
    return {key: value for key, value in content.items() if value is not None or key in keep}
