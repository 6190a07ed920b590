# weddingplanner/main.py
from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, File, Form, Path, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, EmailStr, Field, StrictBool
from sqlalchemy.orm import Session

from . import accounts, orders, tasks, uploads
from .access import require_admin, require_client
from .auth import Principal
from .config import settings
from .db import Base, engine, get_db, translate_errors
from .errors import AppError, ValidationError, register_error_handlers
from .models import Package

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)

app = FastAPI(title="Wedding Planner API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_error_handlers(app)

Base.metadata.create_all(bind=engine)

settings.upload_dir.mkdir(parents=True, exist_ok=True)
app.mount(f"/{uploads.PUBLIC_PREFIX}", StaticFiles(directory=str(settings.upload_dir)), name="uploads")

api = APIRouter(prefix=settings.api_prefix)

# Row ids are 64-bit integers in the store.
MAX_ID = 2**63 - 1


# -------------------
# Schemas
# -------------------
class RegisterIn(BaseModel):
    name: str
    email: EmailStr
    password: str
    role: Optional[str] = None


class LoginIn(BaseModel):
    email: EmailStr
    password: str


class OrderIn(BaseModel):
    package_id: int = Field(ge=1, le=MAX_ID)
    wedding_date: date
    total_price: Decimal


class TaskToggleIn(BaseModel):
    is_done: Optional[StrictBool] = None


def _package_to_dict(p: Package) -> Dict[str, Any]:
    return {
        "id": p.id,
        "name": p.name,
        "description": p.description,
        "price": float(p.price),
        "is_active": bool(p.is_active),
    }


# -------------------
# Health
# -------------------
@api.get("/")
def root():
    return {"ok": True, "service": "wedding-planner-api"}


# -------------------
# Auth
# -------------------
@api.post("/auth/register", status_code=201)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    return accounts.register(db, payload.name, payload.email, payload.password, payload.role)


@api.post("/auth/login")
def login(payload: LoginIn, db: Session = Depends(get_db)):
    return accounts.login(db, payload.email, payload.password)


# -------------------
# Packages & dates (public)
# -------------------
@api.get("/packages")
def list_packages(db: Session = Depends(get_db)) -> List[Dict[str, Any]]:
    with translate_errors(db, "load packages"):
        rows = db.query(Package).filter(Package.is_active.is_(True)).order_by(Package.id).all()
        return [_package_to_dict(p) for p in rows]


@api.get("/booked-dates")
def booked_dates(db: Session = Depends(get_db)) -> List[str]:
    return [d.isoformat() for d in orders.list_booked_dates(db)]


# -------------------
# Client
# -------------------
@api.get("/client/my-order")
def my_order(principal: Principal = Depends(require_client), db: Session = Depends(get_db)):
    return {"order": orders.get_latest_order(db, principal.id)}


@api.post("/client/orders", status_code=201)
def create_order(payload: OrderIn, principal: Principal = Depends(require_client), db: Session = Depends(get_db)):
    order = orders.create_order(db, principal.id, payload.package_id, payload.wedding_date, payload.total_price)
    return orders.order_to_dict(order)


@api.post("/client/orders/confirm")
def confirm_payment(
    orderId: Optional[int] = Form(default=None, ge=1, le=MAX_ID),
    jumlahBayar: Optional[str] = Form(default=None),
    buktiBayar: Optional[UploadFile] = File(default=None),
    principal: Principal = Depends(require_client),
    db: Session = Depends(get_db),
):
    if buktiBayar is None:
        raise ValidationError("Payment proof is required.")
    if orderId is None or not (jumlahBayar or "").strip():
        raise ValidationError("Incomplete data.")

    reference = uploads.store_payment_proof(buktiBayar)
    try:
        order = orders.submit_payment_proof(db, orderId, principal.id, jumlahBayar, reference)
    except AppError:
        uploads.discard(reference)
        raise

    return {"message": "Payment confirmation uploaded.", "order": orders.order_to_dict(order)}


# -------------------
# Admin
# -------------------
@api.get("/admin/orders")
def all_orders(_: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    return orders.list_all_orders(db)


@api.put("/admin/orders/approve/{order_id}")
def approve(
    order_id: int = Path(ge=1, le=MAX_ID),
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    order = orders.approve_payment(db, order_id)
    return {"message": "Payment approved.", "order": orders.order_to_dict(order)}


@api.get("/admin/financial-summary")
def financial_summary(_: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    return orders.financial_summary(db)


@api.get("/admin/orders/{order_id}/tasks")
def order_tasks(
    order_id: int = Path(ge=1, le=MAX_ID),
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return [tasks.task_to_dict(t) for t in tasks.list_tasks_for_order(db, order_id)]


@api.put("/admin/tasks/{task_id}")
def update_task(
    payload: TaskToggleIn,
    task_id: int = Path(ge=1, le=MAX_ID),
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return tasks.task_to_dict(tasks.toggle_task(db, task_id, payload.is_done))


app.include_router(api)


if __name__ == "__main__":
    import os

    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
