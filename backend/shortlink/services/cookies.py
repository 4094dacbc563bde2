"""Cookie transport for access and refresh tokens."""

from __future__ import annotations

from typing import Optional

from fastapi import Request, Response

from shortlink.config import Settings


class CookieService:
    """Set, clear and read the credential cookies.

    Both cookies are HttpOnly, Secure in production and carry max-ages that
    match the token lifetimes.
    """

    def __init__(self, settings: Settings) -> None:
        self.access_name = settings.ACCESS_COOKIE_NAME
        self.refresh_name = settings.REFRESH_COOKIE_NAME
        self.secure = settings.is_production
        self.samesite = settings.COOKIE_SAMESITE
        self.path = settings.COOKIE_PATH
        self.access_max_age = settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
        self.refresh_max_age = settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 3600

    def _set(self, resp: Response, key: str, value: str, max_age: int) -> None:
        resp.set_cookie(
            key=key,
            value=value,
            httponly=True,
            secure=self.secure,
            samesite=self.samesite,
            max_age=max_age,
            path=self.path,
        )

    def set_auth_cookies(self, resp: Response, access_token: str, refresh_token: str) -> None:
        self._set(resp, self.access_name, access_token, self.access_max_age)
        self._set(resp, self.refresh_name, refresh_token, self.refresh_max_age)

    def clear_auth_cookies(self, resp: Response) -> None:
        for key in (self.access_name, self.refresh_name):
            resp.delete_cookie(
                key=key,
                path=self.path,
                httponly=True,
                secure=self.secure,
                samesite=self.samesite,
            )

    @staticmethod
    def _read(req: Request, key: str) -> Optional[str]:
        val = req.cookies.get(key)
        if not val:
            return None
        val = val.strip()
        return val or None

    def read_access_cookie(self, req: Request) -> Optional[str]:
        return self._read(req, self.access_name)

    def read_refresh_cookie(self, req: Request) -> Optional[str]:
        return self._read(req, self.refresh_name)
