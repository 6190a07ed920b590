from datetime import date

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from weddingplanner import orders
from weddingplanner.errors import ConflictError, InternalError, NotFoundError, ValidationError
from weddingplanner.models import Order, Package
from weddingplanner.statuses import OrderStatus, PaymentStatus
from weddingplanner.tasks import DEFAULT_TASKS, list_tasks_for_order

DEC_1 = date(2025, 12, 1)


def _book(db, user, package, day=DEC_1, price="45000000"):
    return orders.create_order(db, user.id, package.id, day, price)


def _set_status(db, order, status):
    order = db.get(Order, order.id)
    order.order_status = status
    db.commit()


def test_create_order_starts_pending_and_unpaid(db, client_user, package):
    order = _book(db, client_user, package)

    assert order.payment_status is PaymentStatus.UNPAID
    assert order.order_status is OrderStatus.PENDING
    data = orders.order_to_dict(order)
    assert data["package_name"] == package.name
    assert data["wedding_date"] == "2025-12-01"
    assert data["total_price"] == 45000000.0


@pytest.mark.parametrize(
    "field",
    ["package_id", "wedding_date", "total_price"],
)
def test_create_order_requires_all_fields(db, client_user, package, field):
    args = {"package_id": package.id, "wedding_date": DEC_1, "total_price": "100"}
    args[field] = None
    with pytest.raises(ValidationError):
        orders.create_order(db, client_user.id, **args)


def test_create_order_rejects_bad_values(db, client_user, package):
    with pytest.raises(ValidationError):
        orders.create_order(db, client_user.id, package.id, "01/12/2025", "100")
    with pytest.raises(ValidationError):
        orders.create_order(db, client_user.id, package.id, DEC_1, "-5")


def test_one_active_order_per_client(db, client_user, package):
    _book(db, client_user, package)
    with pytest.raises(ConflictError) as exc:
        _book(db, client_user, package, day=date(2026, 1, 10))
    assert exc.value.code == "ActiveOrderExists"


def test_active_order_check_runs_before_date_check(db, make_user, package):
    a, b = make_user(), make_user()
    _book(db, a, package)
    _book(db, b, package, day=date(2026, 2, 2))

    # b already has an order and also asks for a's date
    with pytest.raises(ConflictError) as exc:
        _book(db, b, package)
    assert exc.value.code == "ActiveOrderExists"


def test_date_taken_by_another_client(db, make_user, package):
    a, b = make_user(), make_user()
    _book(db, a, package)

    with pytest.raises(ConflictError) as exc:
        _book(db, b, package)
    assert exc.value.code == "DateUnavailable"


@pytest.mark.parametrize("terminal", [OrderStatus.CANCELLED, OrderStatus.DONE])
def test_finished_orders_free_the_date_and_the_client(db, make_user, package, terminal):
    a, b = make_user(), make_user()
    first = _book(db, a, package)
    _set_status(db, first, terminal)

    assert orders.list_booked_dates(db) == []
    _book(db, b, package)
    _book(db, a, package, day=date(2026, 3, 3))


def test_inactive_package_is_not_bookable(db, client_user, package):
    package.is_active = False
    db.commit()
    with pytest.raises(NotFoundError):
        _book(db, client_user, package)


def test_store_rejects_second_active_order_for_date(db, make_user, package):
    a, b = make_user(), make_user()
    _book(db, a, package)

    db.add(Order(user_id=b.id, package_id=package.id, wedding_date=DEC_1, total_price=1))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_store_rejects_second_active_order_for_client(db, client_user, package):
    _book(db, client_user, package)

    db.add(Order(user_id=client_user.id, package_id=package.id, wedding_date=date(2026, 4, 4), total_price=1))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_lost_race_reports_date_unavailable(db, make_user, package, monkeypatch):
    a, b = make_user(), make_user()
    _book(db, a, package)

    real = orders._is_date_taken
    calls = []

    def stale_check(session, day):
        calls.append(day)
        # first look misses the concurrent booking
        return False if len(calls) == 1 else real(session, day)

    monkeypatch.setattr(orders, "_is_date_taken", stale_check)

    with pytest.raises(ConflictError) as exc:
        _book(db, b, package)
    assert exc.value.code == "DateUnavailable"
    assert len(calls) == 2
    assert db.query(Order).count() == 1


def test_submit_payment_proof(db, client_user, package):
    order = _book(db, client_user, package)

    updated = orders.submit_payment_proof(db, order.id, client_user.id, "45000000", "uploads/proof.png")

    assert updated.payment_status is PaymentStatus.AWAITING_CONFIRMATION
    assert updated.order_status is OrderStatus.PENDING
    assert updated.payment_proof_url == "uploads/proof.png"
    assert float(updated.client_paid_amount) == 45000000.0


def test_submit_payment_proof_for_someone_elses_order(db, make_user, package):
    owner, other = make_user(), make_user()
    order = _book(db, owner, package)

    with pytest.raises(NotFoundError):
        orders.submit_payment_proof(db, order.id, other.id, "100", "uploads/x.png")

    db.expire_all()
    assert db.get(Order, order.id).payment_status is PaymentStatus.UNPAID


def test_submit_payment_proof_needs_a_file(db, client_user, package):
    order = _book(db, client_user, package)
    with pytest.raises(ValidationError):
        orders.submit_payment_proof(db, order.id, client_user.id, "100", None)


def test_cannot_submit_proof_after_approval(db, client_user, package):
    order = _book(db, client_user, package)
    orders.approve_payment(db, order.id)

    with pytest.raises(ConflictError) as exc:
        orders.submit_payment_proof(db, order.id, client_user.id, "100", "uploads/late.png")
    assert exc.value.code == "InvalidTransition"


def test_full_lifecycle_provisions_nine_tasks(db, client_user, package):
    order = _book(db, client_user, package)
    orders.submit_payment_proof(db, order.id, client_user.id, "45000000", "uploads/proof.png")

    approved = orders.approve_payment(db, order.id)

    assert approved.payment_status is PaymentStatus.PAID
    assert approved.order_status is OrderStatus.CONFIRMED
    created = list_tasks_for_order(db, order.id)
    assert [t.name for t in created] == list(DEFAULT_TASKS)
    assert all(t.is_done is False for t in created)


def test_reapproval_is_a_no_op(db, client_user, package):
    order = _book(db, client_user, package)
    orders.approve_payment(db, order.id)
    again = orders.approve_payment(db, order.id)

    assert again.order_status is OrderStatus.CONFIRMED
    assert len(list_tasks_for_order(db, order.id)) == 9


def test_approve_unknown_order(db):
    with pytest.raises(NotFoundError):
        orders.approve_payment(db, 12345)


def test_approve_cancelled_order_is_rejected(db, client_user, package):
    order = _book(db, client_user, package)
    _set_status(db, order, OrderStatus.CANCELLED)

    with pytest.raises(ConflictError):
        orders.approve_payment(db, order.id)
    assert list_tasks_for_order(db, order.id) == []


def test_booked_dates_are_distinct_and_sorted(db, make_user, package):
    a, b, c = make_user(), make_user(), make_user()
    _book(db, a, package, day=date(2026, 5, 5))
    _book(db, b, package, day=date(2025, 12, 1))
    cancelled = _book(db, c, package, day=date(2026, 1, 1))
    _set_status(db, cancelled, OrderStatus.CANCELLED)

    assert orders.list_booked_dates(db) == [date(2025, 12, 1), date(2026, 5, 5)]


def test_financial_summary_counts_paid_orders_only(db, make_user, package):
    assert orders.financial_summary(db) == {"totalRevenue": 0.0, "totalPaidOrders": 0}

    a, b = make_user(), make_user()
    paid = _book(db, a, package, price="45000000")
    _book(db, b, package, day=date(2026, 6, 6), price="85000000")
    orders.approve_payment(db, paid.id)

    assert orders.financial_summary(db) == {"totalRevenue": 45000000.0, "totalPaidOrders": 1}


def test_latest_order_includes_tasks(db, client_user, package):
    assert orders.get_latest_order(db, client_user.id) is None

    old = _book(db, client_user, package, day=date(2025, 1, 1))
    _set_status(db, old, OrderStatus.DONE)
    current = _book(db, client_user, package)
    orders.approve_payment(db, current.id)

    latest = orders.get_latest_order(db, client_user.id)
    assert latest["id"] == current.id
    assert [t["name"] for t in latest["tasks"]] == list(DEFAULT_TASKS)
    assert set(latest["tasks"][0]) == {"id", "name", "is_done"}


def test_list_all_orders_joins_client_and_package(db, make_user, package):
    a, b = make_user(name="Ayu"), make_user(name="Budi")
    _book(db, a, package)
    _book(db, b, package, day=date(2026, 7, 7))

    rows = orders.list_all_orders(db)
    assert [r["client_name"] for r in rows] == ["Budi", "Ayu"]
    assert rows[0]["client_email"] == b.email
    assert rows[0]["package_name"] == db.get(Package, package.id).name


def test_store_failure_rolls_back_and_raises_internal_error(db, client_user, package):
    _book(db, client_user, package)
    db.execute(text("DROP TABLE preparation_tasks"))
    db.commit()

    with pytest.raises(InternalError) as err:
        orders.get_latest_order(db, client_user.id)

    assert err.value.message == "Failed to load order."
    assert not db.in_transaction()
    # session is usable again
    assert db.query(Order).count() == 1
