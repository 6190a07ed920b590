# weddingplanner/accounts.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .auth import Principal, create_token, hash_password, verify_password
from .config import settings
from .db import translate_errors
from .errors import AuthError, ConflictError, ForbiddenError, ValidationError
from .models import User
from .statuses import Role

log = logging.getLogger(__name__)


def user_to_dict(u: User) -> Dict[str, Any]:
    return {"id": u.id, "name": u.name, "email": u.email, "role": u.role.value}


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def create_user(db: Session, name: str, email: str, password: str, role: Role = Role.CLIENT) -> User:
    email = _normalize_email(email)
    with translate_errors(db, "register user"):
        if db.query(User.id).filter(User.email == email).first():
            raise ConflictError("Email is already registered.", code="EmailTaken")

        u = User(name=name.strip(), email=email, password_hash=hash_password(password), role=role)
        db.add(u)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("Email is already registered.", code="EmailTaken")
        db.refresh(u)

    log.info("[AUTH] registered %s user %s", role.value, u.id)
    return u


def register(db: Session, name: str, email: str, password: str, role: Optional[str] = None) -> Dict[str, Any]:
    if not (name or "").strip() or not (email or "").strip() or not password:
        raise ValidationError("Name, email and password are required.")

    try:
        wanted = Role(role) if role else Role.CLIENT
    except ValueError:
        raise ValidationError(f"Unknown role '{role}'.")

    if wanted is Role.ADMIN and not settings.allow_admin_signup:
        raise ForbiddenError("Admin accounts cannot be self-registered.")

    return user_to_dict(create_user(db, name, email, password, wanted))


def login(db: Session, email: str, password: str) -> Dict[str, Any]:
    if not (email or "").strip() or not password:
        raise ValidationError("Email and password are required.")

    with translate_errors(db, "log in"):
        u = db.query(User).filter(User.email == _normalize_email(email)).first()

    if not u or not verify_password(password, u.password_hash):
        raise AuthError("Wrong email or password.")

    principal = Principal(id=u.id, name=u.name, role=u.role)
    return {"token": create_token(principal), "user": principal.model_dump(mode="json")}
