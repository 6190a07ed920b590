# weddingplanner/seed.py
from __future__ import annotations

import logging
import os
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from .accounts import create_user
from .db import Base, SessionLocal, engine
from .models import Package, User
from .statuses import Role

log = logging.getLogger(__name__)

DEFAULT_PACKAGES = (
    {
        "name": "Intimate",
        "description": "Up to 100 guests. Venue styling, catering and documentation.",
        "price": Decimal("45000000"),
    },
    {
        "name": "Classic",
        "description": "Up to 300 guests. Adds entertainment, attire and makeup.",
        "price": Decimal("85000000"),
    },
    {
        "name": "Grand",
        "description": "Up to 700 guests. Full planning and day-of coordination team.",
        "price": Decimal("150000000"),
    },
)


def seed_packages(db: Session) -> int:
    existing = {name for (name,) in db.query(Package.name).all()}
    made = 0
    for p in DEFAULT_PACKAGES:
        if p["name"] in existing:
            continue
        db.add(Package(is_active=True, **p))
        made += 1
    db.commit()
    return made


def ensure_admin(db: Session, name: str, email: str, password: str) -> Optional[User]:
    if db.query(User).filter(User.email == email.strip().lower()).first():
        return None
    return create_user(db, name, email, password, Role.ADMIN)


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    Base.metadata.create_all(bind=engine)

    with SessionLocal() as db:
        made = seed_packages(db)
        print(f"OK  packages: {made} added")

        email = os.getenv("ADMIN_EMAIL", "").strip()
        password = os.getenv("ADMIN_PASSWORD", "")
        if email and password:
            admin = ensure_admin(db, os.getenv("ADMIN_NAME", "Administrator"), email, password)
            print(f"OK  admin {email}: {'created' if admin else 'already exists'}")
        else:
            print("SKIP admin (set ADMIN_EMAIL and ADMIN_PASSWORD)")


if __name__ == "__main__":
    main()
