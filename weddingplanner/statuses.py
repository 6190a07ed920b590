# weddingplanner/statuses.py
"""
Closed status vocabulary for users, payments and orders.

Stored values are the enum values, so the database stays readable.
"""
from __future__ import annotations

import enum
from typing import Dict, FrozenSet, Mapping, TypeVar

from .errors import ConflictError


class Role(str, enum.Enum):
    CLIENT = "client"
    ADMIN = "admin"

    @property
    def can_book(self) -> bool:
        return self in (Role.CLIENT, Role.ADMIN)

    @property
    def can_manage_orders(self) -> bool:
        return self is Role.ADMIN


class PaymentStatus(str, enum.Enum):
    UNPAID = "Unpaid"
    AWAITING_CONFIRMATION = "Awaiting Confirmation"
    PAID = "Paid"


class OrderStatus(str, enum.Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    DONE = "Done"
    CANCELLED = "Cancelled"

    @property
    def is_active(self) -> bool:
        return self not in TERMINAL_ORDER_STATUSES


TERMINAL_ORDER_STATUSES: FrozenSet[OrderStatus] = frozenset({OrderStatus.DONE, OrderStatus.CANCELLED})

# Self-transitions are idempotent repeats.
PAYMENT_TRANSITIONS: Dict[PaymentStatus, FrozenSet[PaymentStatus]] = {
    PaymentStatus.UNPAID: frozenset({PaymentStatus.AWAITING_CONFIRMATION, PaymentStatus.PAID}),
    PaymentStatus.AWAITING_CONFIRMATION: frozenset({PaymentStatus.AWAITING_CONFIRMATION, PaymentStatus.PAID}),
    PaymentStatus.PAID: frozenset({PaymentStatus.PAID}),
}

ORDER_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.CANCELLED, OrderStatus.DONE}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED, OrderStatus.DONE}),
    OrderStatus.DONE: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

S = TypeVar("S", PaymentStatus, OrderStatus)


def can_transition(table: Mapping[S, FrozenSet[S]], current: S, target: S) -> bool:
    return target in table.get(current, frozenset())


def check_transition(table: Mapping[S, FrozenSet[S]], current: S, target: S) -> None:
    if not can_transition(table, current, target):
        raise ConflictError(
            f"Cannot move from '{current.value}' to '{target.value}'.",
            code="InvalidTransition",
        )
