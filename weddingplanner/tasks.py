# weddingplanner/tasks.py
"""
Preparation checklist for confirmed orders.

Every order gets the same nine tasks, created once when its payment is
approved. After that, admins tick tasks on and off one at a time.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from sqlalchemy import func, insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from .db import translate_errors
from .errors import NotFoundError, ValidationError
from .models import PreparationTask

log = logging.getLogger(__name__)

DEFAULT_TASKS: tuple[str, ...] = (
    "Initial meeting & concept",
    "Venue booking & deposit",
    "Catering selection & deposit",
    "Decoration selection & deposit",
    "Attire fitting & deposit",
    "Photography/videography selection & deposit",
    "Makeup artist selection & deposit",
    "Invitations & souvenirs order",
    "Day-of coordination",
)

_CONFLICT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def task_to_dict(t: PreparationTask) -> Dict[str, Any]:
    return {
        "id": t.id,
        "order_id": t.order_id,
        "name": t.name,
        "is_done": bool(t.is_done),
        "updated_at": t.updated_at.isoformat() if t.updated_at else None,
    }


def count_tasks(db: Session, order_id: int) -> int:
    return db.query(func.count(PreparationTask.id)).filter(PreparationTask.order_id == order_id).scalar()


def _insert_if_absent(db: Session, rows: List[Dict[str, Any]]) -> int:
    table = PreparationTask.__table__
    dialect = db.get_bind().dialect.name
    make_insert = _CONFLICT_INSERTS.get(dialect)
    if make_insert is None:
        # Other stores still get the (order_id, position) unique constraint.
        stmt = insert(table).values(rows)
    else:
        stmt = make_insert(table).values(rows).on_conflict_do_nothing(index_elements=["order_id", "position"])
    return db.execute(stmt).rowcount or 0


def ensure_default_tasks(db: Session, order_id: int, commit: bool = True) -> int:
    """Create the default checklist for an order unless it already has tasks.

    Returns how many tasks were created (9 the first time, 0 afterwards).
    Rows already present, or inserted concurrently by another approval, are
    skipped by the store on the (order_id, position) key.
    """
    with translate_errors(db, "create preparation tasks"):
        if count_tasks(db, order_id) > 0:
            return 0

        now = datetime.now(timezone.utc)
        rows = [
            {"order_id": order_id, "position": i, "name": name, "is_done": False, "updated_at": now}
            for i, name in enumerate(DEFAULT_TASKS, start=1)
        ]
        created = _insert_if_absent(db, rows)
        if commit:
            db.commit()

    if created:
        log.info("[TASKS] created %d default tasks for order %s", created, order_id)
    else:
        log.warning("[TASKS] order %s was provisioned concurrently", order_id)
    return created


def list_tasks_for_order(db: Session, order_id: int) -> List[PreparationTask]:
    with translate_errors(db, "load tasks"):
        return (
            db.query(PreparationTask)
            .filter(PreparationTask.order_id == order_id)
            .order_by(PreparationTask.id)
            .all()
        )


def toggle_task(db: Session, task_id: int, is_done: Any) -> PreparationTask:
    if not isinstance(is_done, bool):
        raise ValidationError("is_done (true/false) is required.")

    with translate_errors(db, "update task"):
        task = db.get(PreparationTask, task_id)
        if not task:
            raise NotFoundError("Task not found.")

        task.is_done = is_done
        task.updated_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(task)

    log.info("[TASKS] task %s -> is_done=%s", task_id, is_done)
    return task
