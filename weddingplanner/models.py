# weddingplanner/models.py
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship

from .db import Base
from .statuses import TERMINAL_ORDER_STATUSES, OrderStatus, PaymentStatus, Role


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _status_enum(enum_cls, name: str) -> Enum:
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=32,
        values_callable=lambda e: [m.value for m in e],
        validate_strings=True,
    )


_terminal = ", ".join(f"'{s.value}'" for s in sorted(TERMINAL_ORDER_STATUSES, key=lambda s: s.value))
# Partial-index predicate: the order still holds its client and its date.
ACTIVE_ORDER_PREDICATE = text(f"order_status NOT IN ({_terminal})")


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(_status_enum(Role, "user_role"), nullable=False, default=Role.CLIENT)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    orders = relationship("Order", back_populates="user")


class Package(Base):
    __tablename__ = "packages"
    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text, default="")
    price = Column(Numeric(14, 2), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)


class Order(Base):
    __tablename__ = "orders"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    package_id = Column(Integer, ForeignKey("packages.id"), nullable=False)
    wedding_date = Column(Date, nullable=False, index=True)
    total_price = Column(Numeric(14, 2), nullable=False)
    payment_status = Column(
        _status_enum(PaymentStatus, "payment_status"), nullable=False, default=PaymentStatus.UNPAID
    )
    order_status = Column(_status_enum(OrderStatus, "order_status"), nullable=False, default=OrderStatus.PENDING)
    payment_proof_url = Column(String, nullable=True)
    client_paid_amount = Column(Numeric(14, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    user = relationship("User", back_populates="orders")
    package = relationship("Package")
    tasks = relationship(
        "PreparationTask",
        back_populates="order",
        order_by="PreparationTask.id",
        passive_deletes=True,
    )

    __table_args__ = (
        # one active order per client
        Index(
            "uq_orders_active_user",
            "user_id",
            unique=True,
            postgresql_where=ACTIVE_ORDER_PREDICATE,
            sqlite_where=ACTIVE_ORDER_PREDICATE,
        ),
        # one active order per wedding date
        Index(
            "uq_orders_active_date",
            "wedding_date",
            unique=True,
            postgresql_where=ACTIVE_ORDER_PREDICATE,
            sqlite_where=ACTIVE_ORDER_PREDICATE,
        ),
    )


class PreparationTask(Base):
    __tablename__ = "preparation_tasks"
    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    name = Column(String, nullable=False)
    is_done = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow)

    order = relationship("Order", back_populates="tasks")

    __table_args__ = (UniqueConstraint("order_id", "position", name="uq_task_order_position"),)
