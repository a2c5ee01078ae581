"""
Response envelope shared by all API routes.

    {"success": true, "data": ...}
    {"success": false, "error": "..."}
"""

from typing import Any, Generic, Optional, TypeVar

from fastapi.responses import JSONResponse
from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Uniform success/error envelope."""

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None


def ok(data: Any = None) -> dict:
    return {"success": True, "data": data}


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})
