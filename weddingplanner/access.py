# weddingplanner/access.py
from __future__ import annotations

from fastapi import Depends, Header

from .auth import Principal, decode_token
from .errors import AuthError, ForbiddenError


def get_principal(
    authorization: str | None = Header(default=None),
    x_auth_token: str | None = Header(default=None),
) -> Principal:
    token = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
    elif x_auth_token:
        # header used by the first web client
        token = x_auth_token.strip()

    if not token:
        raise AuthError("Access denied. No token provided.")

    principal = decode_token(token)
    if principal is None:
        raise AuthError("Invalid token.")
    return principal


def require_client(principal: Principal = Depends(get_principal)) -> Principal:
    if not principal.role.can_book:
        raise ForbiddenError("Access denied. Only for clients.")
    return principal


def require_admin(principal: Principal = Depends(get_principal)) -> Principal:
    if not principal.is_admin:
        raise ForbiddenError("Access denied. Only for admins.")
    return principal
