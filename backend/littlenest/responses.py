"""
LittleNest Backend: Response Envelope
=======================================

What:  Builds the success envelope returned by every route.
How:   Payloads go through jsonable_encoder so models, UUIDs and
       datetimes become plain JSON; the client IP is left out in
       production.

    http_response(request, 200, "Top names retrieved successfully", names)
    → {"success": true, "status_code": 200,
       "request": {"ip": ..., "method": "GET", "url": "/api/names/top"},
       "message": "Top names retrieved successfully", "data": [...]}
"""

from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from littlenest.config import settings
from littlenest.schemas.common import ApiResponse, RequestInfo


def http_response(
    request: Request,
    status_code: int,
    message: str,
    data: Any = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    client_ip = request.client.host if request.client else None
    envelope = ApiResponse(
        success=status_code < 400,
        status_code=status_code,
        request=RequestInfo(
            ip=None if settings.is_production else client_ip,
            method=request.method,
            url=str(request.url.path),
        ),
        message=message,
    )
    content = envelope.model_dump(mode="json")
    # Payloads are arbitrary models/lists; encode them the same way FastAPI would
    content["data"] = jsonable_encoder(data)
    if settings.is_production:
        content["request"].pop("ip", None)
    return JSONResponse(status_code=status_code, content=content, headers=headers)
