"""Authentication routes"""

from fastapi import APIRouter, Body, Depends, Request, Response, status
from sqlalchemy.orm import Session
from typing import Optional

from shortlink.api.deps import (
    client_ip,
    get_auth_service,
    get_cookie_service,
    get_current_user,
    get_settings,
)
from shortlink.api.errors import error_response
from shortlink.config import Settings
from shortlink.core.database import get_db
from shortlink.core.exceptions import AuthenticationError, AuthorizationError
from shortlink.models.user import User
from shortlink.schemas.user import (
    LogoutRequest,
    LogoutResponse,
    RefreshTokenRequest,
    TokenResponse,
    UserCreate,
    UserLogin,
    UserResponse,
)
from shortlink.services.auth_service import AuthService
from shortlink.services.cookies import CookieService
from shortlink.services.token_service import TokenPair

router = APIRouter()


def _token_response(
    message: str,
    pair: TokenPair,
    settings: Settings,
    user: Optional[User] = None,
) -> TokenResponse:
    return TokenResponse(
        message=message,
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        token_type="bearer",
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=UserResponse.model_validate(user) if user is not None else None,
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: UserCreate,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    cookies: CookieService = Depends(get_cookie_service),
    settings: Settings = Depends(get_settings),
):
    """
    Create an account and start its first session

    Returns:
        Token pair; both tokens are also set as cookies
    """
    user, pair = auth.register(db, payload.username, payload.password, ip_address=client_ip(request))
    cookies.set_auth_cookies(response, pair.access_token, pair.refresh_token)
    return _token_response("User registered successfully", pair, settings, user)


@router.post("/login", response_model=TokenResponse, status_code=status.HTTP_200_OK)
def login(
    credentials: UserLogin,
    response: Response,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    cookies: CookieService = Depends(get_cookie_service),
    settings: Settings = Depends(get_settings),
):
    """
    Login endpoint - check credentials and issue a token pair

    Args:
        credentials: Username and password
        db: Database session

    Returns:
        Token pair and user info
    """
    user, pair = auth.login(db, credentials.username, credentials.password)
    cookies.set_auth_cookies(response, pair.access_token, pair.refresh_token)
    return _token_response("Login successful", pair, settings, user)


@router.post("/logout", response_model=LogoutResponse, status_code=status.HTTP_200_OK)
def logout(
    request: Request,
    response: Response,
    body: Optional[LogoutRequest] = Body(None),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    cookies: CookieService = Depends(get_cookie_service),
):
    """
    Logout endpoint - always succeeds

    Cookies are cleared first; revoking the presented refresh session is
    best effort.
    """
    cookies.clear_auth_cookies(response)
    refresh_token = cookies.read_refresh_cookie(request) or (body.refresh_token if body else None)
    revoked = auth.logout(db, refresh_token)
    return LogoutResponse(message="Logged out successfully", refresh_token_revoked=revoked)


@router.post("/logout-all", response_model=LogoutResponse, status_code=status.HTTP_200_OK)
def logout_all(
    request: Request,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    cookies: CookieService = Depends(get_cookie_service),
):
    """Revoke every session of the current user, on all devices"""
    count = auth.logout_everywhere(db, current_user.id, ip_address=client_ip(request))
    cookies.clear_auth_cookies(response)
    return LogoutResponse(
        message=f"Logged out from {count} session(s)",
        refresh_token_revoked=count > 0,
    )


@router.post("/refresh", response_model=TokenResponse)
def refresh_token(
    request: Request,
    response: Response,
    body: Optional[RefreshTokenRequest] = Body(None),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    cookies: CookieService = Depends(get_cookie_service),
    settings: Settings = Depends(get_settings),
):
    """
    Exchange a refresh token for a new pair

    The token comes from the refresh cookie, or the JSON body for clients
    that do not keep cookies. Every failure is reported with the same
    message and clears the credential cookies.
    """
    presented = cookies.read_refresh_cookie(request) or (body.refresh_token if body else None)
    if not presented:
        raise AuthenticationError("No refresh token provided")

    try:
        _, pair = auth.refresh(db, presented, ip_address=client_ip(request))
    except AuthorizationError as exc:
        failed = error_response(request, exc.status_code, exc.message)
        cookies.clear_auth_cookies(failed)
        return failed

    cookies.set_auth_cookies(response, pair.access_token, pair.refresh_token)
    return _token_response("Token refreshed successfully", pair, settings)


@router.get("/me", response_model=UserResponse)
def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """
    Get current user information

    Args:
        current_user: Current authenticated user

    Returns:
        User information
    """
    return UserResponse.model_validate(current_user)
