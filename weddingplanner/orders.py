# weddingplanner/orders.py
"""
Order lifecycle: booking, payment proof, approval and reporting.

A client holds at most one active order, and a wedding date belongs to at
most one active order. Both rules are checked here, so callers get a clear
message. They are also enforced by partial unique indexes on ``orders``, so
a concurrent request that slips past the checks is still rejected.
"""
from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from .db import translate_errors
from .errors import ConflictError, NotFoundError, ValidationError
from .models import Order, Package, PreparationTask
from .statuses import (
    ORDER_TRANSITIONS,
    PAYMENT_TRANSITIONS,
    TERMINAL_ORDER_STATUSES,
    OrderStatus,
    PaymentStatus,
    check_transition,
)
from .tasks import ensure_default_tasks

log = logging.getLogger(__name__)


# -------------------
# Helpers
# -------------------
def _money(value: Any, field: str) -> Decimal:
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number.")
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"{field} must be greater than zero.")
    return amount


def _as_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError("wedding_date must be an ISO date (YYYY-MM-DD).")


def _is_active():
    return Order.order_status.not_in(list(TERMINAL_ORDER_STATUSES))


def _float(v: Optional[Decimal]) -> Optional[float]:
    return float(v) if v is not None else None


def order_to_dict(o: Order) -> Dict[str, Any]:
    return {
        "id": o.id,
        "user_id": o.user_id,
        "package_id": o.package_id,
        "package_name": o.package.name if o.package else None,
        "wedding_date": o.wedding_date.isoformat(),
        "total_price": _float(o.total_price),
        "payment_status": o.payment_status.value,
        "order_status": o.order_status.value,
        "payment_proof_url": o.payment_proof_url,
        "client_paid_amount": _float(o.client_paid_amount),
        "created_at": o.created_at.isoformat() if o.created_at else None,
    }


def _has_active_order_for_user(db: Session, user_id: int) -> bool:
    return db.query(Order.id).filter(Order.user_id == user_id, _is_active()).first() is not None


def _is_date_taken(db: Session, wedding_date: date) -> bool:
    return db.query(Order.id).filter(Order.wedding_date == wedding_date, _is_active()).first() is not None


def _check_booking_rules(db: Session, user_id: int, wedding_date: date) -> None:
    if _has_active_order_for_user(db, user_id):
        raise ConflictError("You already have an active order.", code="ActiveOrderExists")
    if _is_date_taken(db, wedding_date):
        raise ConflictError("Sorry, that date is already booked.", code="DateUnavailable")


def _load_order(db: Session, order_id: int) -> Optional[Order]:
    return db.query(Order).options(joinedload(Order.package)).filter(Order.id == order_id).first()


# -------------------
# Booking
# -------------------
def create_order(
    db: Session,
    user_id: Optional[int],
    package_id: Optional[int],
    wedding_date: Any,
    total_price: Any,
) -> Order:
    if user_id is None or package_id is None or wedding_date in (None, "") or total_price in (None, ""):
        raise ValidationError("Incomplete data.")

    wedding_date = _as_date(wedding_date)
    total_price = _money(total_price, "total_price")

    with translate_errors(db, "create order"):
        _check_booking_rules(db, user_id, wedding_date)

        package = db.get(Package, package_id)
        if not package or not package.is_active:
            raise NotFoundError("Package not found.")

        order = Order(
            user_id=user_id,
            package_id=package_id,
            wedding_date=wedding_date,
            total_price=total_price,
            payment_status=PaymentStatus.UNPAID,
            order_status=OrderStatus.PENDING,
        )
        db.add(order)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            log.warning("[ORDER] insert for user %s on %s lost a race", user_id, wedding_date)
            _check_booking_rules(db, user_id, wedding_date)
            raise

        order = _load_order(db, order.id)

    log.info("[ORDER] created order %s for user %s on %s", order.id, user_id, wedding_date)
    return order


def submit_payment_proof(
    db: Session,
    order_id: int,
    user_id: int,
    amount: Any,
    proof_reference: Optional[str],
) -> Order:
    if not proof_reference:
        raise ValidationError("Payment proof is required.")
    if order_id is None or amount in (None, ""):
        raise ValidationError("Incomplete data.")
    amount = _money(amount, "amount")

    with translate_errors(db, "submit payment proof"):
        order = db.query(Order).filter(Order.id == order_id, Order.user_id == user_id).first()
        if not order:
            raise NotFoundError("Order not found.")

        if not order.order_status.is_active:
            raise ConflictError(f"Order is already {order.order_status.value}.", code="InvalidTransition")
        check_transition(PAYMENT_TRANSITIONS, order.payment_status, PaymentStatus.AWAITING_CONFIRMATION)

        order.payment_status = PaymentStatus.AWAITING_CONFIRMATION
        order.payment_proof_url = proof_reference
        order.client_paid_amount = amount
        db.commit()

        order = _load_order(db, order_id)

    log.info("[ORDER] payment proof submitted for order %s", order_id)
    return order


def approve_payment(db: Session, order_id: int) -> Order:
    """Mark an order paid and confirmed, and provision its checklist.

    Approving an order that is already paid changes nothing.
    """
    with translate_errors(db, "approve payment"):
        order = db.get(Order, order_id)
        if not order:
            raise NotFoundError("Order not found.")

        already_paid = order.payment_status is PaymentStatus.PAID
        check_transition(PAYMENT_TRANSITIONS, order.payment_status, PaymentStatus.PAID)
        check_transition(ORDER_TRANSITIONS, order.order_status, OrderStatus.CONFIRMED)

        order.payment_status = PaymentStatus.PAID
        order.order_status = OrderStatus.CONFIRMED
        db.flush()

        ensure_default_tasks(db, order_id, commit=False)
        db.commit()

        order = _load_order(db, order_id)

    if already_paid:
        log.info("[ORDER] order %s was already approved", order_id)
    else:
        log.info("[ORDER] payment approved for order %s", order_id)
    return order


# -------------------
# Reads
# -------------------
def list_booked_dates(db: Session) -> List[date]:
    with translate_errors(db, "load booked dates"):
        rows = (
            db.query(Order.wedding_date)
            .filter(_is_active())
            .distinct()
            .order_by(Order.wedding_date)
            .all()
        )
    return [r.wedding_date for r in rows]


def financial_summary(db: Session) -> Dict[str, Any]:
    with translate_errors(db, "compute financial summary"):
        total, count = (
            db.query(func.coalesce(func.sum(Order.total_price), 0), func.count(Order.id))
            .filter(Order.payment_status == PaymentStatus.PAID)
            .one()
        )
    return {"totalRevenue": float(total or 0), "totalPaidOrders": int(count or 0)}


def get_latest_order(db: Session, user_id: int) -> Optional[Dict[str, Any]]:
    with translate_errors(db, "load order"):
        order = (
            db.query(Order)
            .options(joinedload(Order.package))
            .filter(Order.user_id == user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .first()
        )
        if not order:
            return None

        tasks = (
            db.query(PreparationTask)
            .filter(PreparationTask.order_id == order.id)
            .order_by(PreparationTask.id)
            .all()
        )

        data = order_to_dict(order)
        data["tasks"] = [{"id": t.id, "name": t.name, "is_done": bool(t.is_done)} for t in tasks]
    return data


def list_all_orders(db: Session) -> List[Dict[str, Any]]:
    with translate_errors(db, "load orders"):
        orders = (
            db.query(Order)
            .options(joinedload(Order.package), joinedload(Order.user))
            .order_by(Order.created_at.desc(), Order.id.desc())
            .all()
        )

        out: List[Dict[str, Any]] = []
        for o in orders:
            row = order_to_dict(o)
            row["client_name"] = o.user.name
            row["client_email"] = o.user.email
            out.append(row)
    return out
