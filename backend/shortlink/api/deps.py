"""API dependencies - service lookup and authentication"""

from fastapi import Depends, Request, Response
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional
import logging

from shortlink.config import Settings
from shortlink.core.database import get_db
from shortlink.core.exceptions import AuthenticationError, AuthorizationError
from shortlink.models.user import User
from shortlink.services.auth_service import AuthService
from shortlink.services.cookies import CookieService
from shortlink.services.geolocation import GeoService
from shortlink.services.link_service import LinkService

logger = logging.getLogger(__name__)

# Bearer header is optional; browsers authenticate with the access cookie
security = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_cookie_service(request: Request) -> CookieService:
    return request.app.state.cookie_service


def get_link_service(request: Request) -> LinkService:
    return request.app.state.link_service


def get_geo_service(request: Request) -> GeoService:
    return request.app.state.geo_service


def client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


def get_current_user_id(
    request: Request,
    response: Response,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    cookies: CookieService = Depends(get_cookie_service),
) -> int:
    """
    Resolve the caller from the access token, rotating credentials if needed

    The access token comes from its cookie, then a Bearer header. When
    neither verifies, a refresh cookie is exchanged for a new pair and the
    new cookies are set on the outgoing response.

    Raises:
        AuthenticationError: If neither token yields a user
    """
    candidates = [cookies.read_access_cookie(request)]
    if credentials:
        candidates.append(credentials.credentials)
    for token in candidates:
        if not token:
            continue
        verification = auth.tokens.verify_access_token(token)
        if verification.is_valid:
            return verification.claims.sub

    refresh_token = cookies.read_refresh_cookie(request)
    if not refresh_token:
        raise AuthenticationError("Not authenticated")

    try:
        user_id, pair = auth.refresh(db, refresh_token, ip_address=client_ip(request))
    except AuthorizationError:
        raise AuthenticationError("Expired access token and invalid refresh token")

    # The old refresh token is consumed; error responses must carry the new pair too
    request.state.rotated_tokens = pair
    cookies.set_auth_cookies(response, pair.access_token, pair.refresh_token)
    return user_id


def get_current_user(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> User:
    """
    Load the authenticated user

    Raises:
        AuthenticationError: If the account no longer exists
    """
    user = db.get(User, user_id)
    if user is None:
        raise AuthenticationError("User not found")
    return user
