from __future__ import annotations

from app.extensions import db
from app.models import Bookmark
from app.services.changes import CHANGE_DELETE, CHANGE_INSERT, record_change


def list_bookmarks(user_id: int) -> list[Bookmark]:
    return (
        Bookmark.query.filter_by(user_id=user_id)
        .order_by(Bookmark.created_at.desc(), Bookmark.id.desc())
        .all()
    )


def create_bookmark(user_id: int, url: str, title: str) -> Bookmark:
    bookmark = Bookmark(user_id=user_id, url=url, title=title)
    db.session.add(bookmark)
    db.session.flush()
    record_change(user_id, CHANGE_INSERT, bookmark.id, bookmark.as_dict())
    db.session.commit()
    return bookmark


def delete_bookmark(user_id: int, bookmark_id: int) -> Bookmark | None:
    bookmark = Bookmark.query.filter_by(id=bookmark_id, user_id=user_id).first()
    if not bookmark:
        return None
    payload = bookmark.as_dict()
    db.session.delete(bookmark)
    record_change(user_id, CHANGE_DELETE, bookmark_id, payload)
    db.session.commit()
    return bookmark
