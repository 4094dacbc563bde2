"""Pydantic schemas for API validation"""

from shortlink.schemas.user import (
    UserCreate,
    UserResponse,
    UserLogin,
    TokenResponse,
    RefreshTokenRequest,
    LogoutRequest,
    LogoutResponse,
)
from shortlink.schemas.link import (
    ShortenLinkRequest,
    ShortenLinkResponse,
    UpdateLinkRequest,
    LinkResponse,
    CountryClicks,
)
from shortlink.schemas.response import APIResponse, ErrorResponse, HealthResponse

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "TokenResponse", "RefreshTokenRequest",
    "LogoutRequest", "LogoutResponse",
    "ShortenLinkRequest", "ShortenLinkResponse", "UpdateLinkRequest", "LinkResponse", "CountryClicks",
    "APIResponse", "ErrorResponse", "HealthResponse",
]
