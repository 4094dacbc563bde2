"""Custom exception classes for the application"""

from typing import Optional, Dict, Any


class ConfigurationError(RuntimeError):
    """Missing or invalid startup configuration; the process must not run"""


class BaseAPIException(Exception):
    """Base exception for all API errors"""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


# Authentication Errors
class AuthenticationError(BaseAPIException):
    """Base authentication error"""
    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, status_code=401)


class InvalidCredentialsError(AuthenticationError):
    """Invalid username or password"""
    def __init__(self):
        super().__init__("Invalid username or password")


# Authorization Errors
class AuthorizationError(BaseAPIException):
    """Insufficient permissions"""
    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message, status_code=403)


REFRESH_FAILURE_MESSAGE = "Invalid refresh token"


class InvalidRefreshTokenError(AuthorizationError):
    """Refresh token is malformed, forged or expired"""
    def __init__(self):
        super().__init__(REFRESH_FAILURE_MESSAGE)


class RefreshTokenReuseError(AuthorizationError):
    """Refresh token was already consumed; every session of the user is revoked.

    Carries the same message as InvalidRefreshTokenError so a client cannot
    tell the two apart.
    """
    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(REFRESH_FAILURE_MESSAGE)


# Resource Errors
class ResourceNotFoundError(BaseAPIException):
    """Resource not found"""
    def __init__(self, resource: str):
        super().__init__(f"{resource} not found", status_code=404)


class ResourceAlreadyExistsError(BaseAPIException):
    """Resource already exists"""
    def __init__(self, resource: str):
        super().__init__(f"{resource} already exists", status_code=409)


class DuplicateUsernameError(ResourceAlreadyExistsError):
    """Username already exists"""
    def __init__(self):
        super().__init__("Username")


class ShortUrlConflictError(ResourceAlreadyExistsError):
    """Short URL already exists"""
    def __init__(self):
        super().__init__("Short URL")


class SessionConflictError(ResourceAlreadyExistsError):
    """Refresh session identifier collision"""
    def __init__(self):
        super().__init__("Refresh session")


# Validation Errors
class ValidationError(BaseAPIException):
    """Validation error"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=422, details=details)


# System Errors
class TransientStoreError(BaseAPIException):
    """Database temporarily unavailable"""
    def __init__(self, message: str = "Service temporarily unavailable. Please try again later."):
        super().__init__(message, status_code=503)
