from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select

from app.extensions import db
from app.models import ChangeEvent


CHANGE_INSERT = "insert"
CHANGE_DELETE = "delete"


def record_change(user_id: int, kind: str, entity_id: int | None, payload: dict):
    event = ChangeEvent(
        user_id=user_id,
        kind=kind,
        entity_id=entity_id,
        payload=payload,
    )
    db.session.add(event)
    return event


def head_cursor(user_id: int) -> int:
    return (
        db.session.query(db.func.max(ChangeEvent.id)).filter_by(user_id=user_id).scalar()
        or 0
    )


def list_changes(user_id: int, since: int, limit: int) -> list[ChangeEvent]:
    return (
        ChangeEvent.query.filter_by(user_id=user_id)
        .filter(ChangeEvent.id > since)
        .order_by(ChangeEvent.id.asc())
        .limit(limit)
        .all()
    )


def prune_change_events(older_than: datetime) -> int:
    # The newest event per user survives so head_cursor never moves backwards.
    newest = select(func.max(ChangeEvent.id)).group_by(ChangeEvent.user_id)
    deleted = (
        ChangeEvent.query.filter(ChangeEvent.created_at < older_than)
        .filter(ChangeEvent.id.not_in(newest))
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return deleted
