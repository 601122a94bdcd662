"""
LittleNest Backend: Shared Response Schemas
=============================================

What:  The response envelope, pagination block, error body and health
       payload shared by every route module.
How:   Routes build envelopes through littlenest.responses.http_response();
       the models here document the shape for OpenAPI.

Envelope (every successful response):
    {
        "success": true,
        "status_code": 200,
        "request": {"ip": "10.0.0.7", "method": "GET", "url": "/api/names/top"},
        "message": "Top names retrieved successfully",
        "data": {...}
    }
"""

import math
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class RequestInfo(BaseModel):
    ip: Optional[str] = Field(default=None, description="Client IP (omitted in production)")
    method: str
    url: str


class ApiResponse(BaseModel):
    success: bool = True
    status_code: int
    request: RequestInfo
    message: str
    data: Any = None


class Pagination(BaseModel):
    """
    Offset pagination block returned alongside list payloads.

    has_more is computed from the rows actually returned, so a short last
    page reports has_more=false even when total_items is stale.
    """
    current_page: int
    total_pages: int
    total_items: int
    has_more: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int, returned: int) -> "Pagination":
        skip = (page - 1) * limit
        return cls(
            current_page=page,
            total_pages=math.ceil(total / limit) if limit else 0,
            total_items=total,
            has_more=skip + returned < total,
        )


class ErrorResponse(BaseModel):
    """
    What:  Standardized error body for all API errors.

    Example:
        {
            "success": false,
            "error": "conflict",
            "message": "Name already exists",
            "details": {"name": "Ava"},
            "request_id": "9f1c2ab0"
        }
    """
    success: bool = False
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[Dict[str, Any]] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy or unhealthy")
    version: str
    environment: str
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float
    system: Dict[str, Any] = Field(default_factory=dict, description="Host information")
