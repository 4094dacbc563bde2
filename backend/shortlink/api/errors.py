"""JSON error envelope shared by exception handlers and routes"""

from typing import Any, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from shortlink.schemas.response import ErrorResponse


def error_response(
    request: Request,
    status_code: int,
    message: str,
    details: Optional[Any] = None,
) -> JSONResponse:
    """
    Build the error envelope

    Credentials rotated earlier in the same request are re-sent, since the
    client's old refresh token is already consumed.
    """
    body = ErrorResponse(
        error=message,
        details=details if details is not None else {},
        path=request.url.path,
    )
    resp = JSONResponse(status_code=status_code, content=body.model_dump())

    rotated = getattr(request.state, "rotated_tokens", None)
    if rotated is not None:
        request.app.state.cookie_service.set_auth_cookies(
            resp, rotated.access_token, rotated.refresh_token
        )
    return resp
