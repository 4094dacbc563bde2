"""User and authentication schemas"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from datetime import datetime

# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


def _check_password_bytes(v: str) -> str:
    if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return v


class UserLogin(BaseModel):
    """User login schema"""
    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1)

    @field_validator('username')
    @classmethod
    def normalize_username(cls, v):
        return v.strip().lower()

    @field_validator('password')
    @classmethod
    def password_bytes(cls, v):
        return _check_password_bytes(v)


class UserCreate(BaseModel):
    """User registration schema"""
    username: str = Field(..., min_length=3, max_length=50, pattern=r'^[a-zA-Z0-9_-]+$')
    password: str = Field(..., min_length=8)

    @field_validator('username')
    @classmethod
    def username_lowercase(cls, v):
        return v.lower()

    @field_validator('password')
    @classmethod
    def password_bytes(cls, v):
        return _check_password_bytes(v)


class UserResponse(BaseModel):
    """User response schema"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    created_at: Optional[datetime] = None


class RefreshTokenRequest(BaseModel):
    """Refresh token supplied in the body instead of the cookie"""
    refresh_token: Optional[str] = None


class LogoutRequest(BaseModel):
    """Optional refresh token to revoke on logout"""
    refresh_token: Optional[str] = None


class TokenResponse(BaseModel):
    """Issued credentials; the refresh token also travels in its cookie"""
    message: str
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: Optional[UserResponse] = None


class LogoutResponse(BaseModel):
    success: bool = True
    message: str
    refresh_token_revoked: bool = False
