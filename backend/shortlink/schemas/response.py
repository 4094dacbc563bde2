"""Generic API response schemas"""

from pydantic import BaseModel, Field
from typing import Optional, Any, Dict
from datetime import datetime, timezone


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class APIResponse(BaseModel):
    """Generic API success response"""
    success: bool = True
    message: str
    data: Optional[Any] = None
    timestamp: str = Field(default_factory=_timestamp)


class ErrorResponse(BaseModel):
    """Generic API error response"""
    success: bool = False
    error: str
    details: Optional[Any] = None
    path: Optional[str] = None
    timestamp: str = Field(default_factory=_timestamp)


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    timestamp: str
    database: Dict[str, Any]
