# weddingplanner/auth.py
from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from .statuses import Role

pwd = CryptContext(schemes=["argon2"], deprecated="auto")


class Principal(BaseModel):
    """The authenticated caller, as carried in the token."""

    id: int
    name: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role.can_manage_orders


def _jwt_secret() -> str:
    return os.getenv("JWT_SECRET", "dev-secret-change-me")


def _jwt_alg() -> str:
    return os.getenv("JWT_ALG", "HS256")


def _jwt_expire_minutes() -> int:
    # default 24h
    raw = os.getenv("JWT_EXPIRE_MIN", "1440")
    try:
        return int(raw)
    except ValueError:
        return 1440


def hash_password(p: str) -> str:
    return pwd.hash(p)


def verify_password(p: str, h: str) -> bool:
    return pwd.verify(p, h)


def create_token(principal: Principal) -> str:
    exp = datetime.now(timezone.utc) + timedelta(minutes=_jwt_expire_minutes())
    payload = {
        "sub": str(principal.id),
        "name": principal.name,
        "role": principal.role.value,
        "exp": exp,
    }
    return jwt.encode(payload, _jwt_secret(), algorithm=_jwt_alg())


def decode_token(token: str) -> Optional[Principal]:
    try:
        data = jwt.decode(token, _jwt_secret(), algorithms=[_jwt_alg()])
        return Principal(id=int(data["sub"]), name=data.get("name") or "", role=Role(data["role"]))
    except (JWTError, KeyError, TypeError, ValueError):
        return None
