from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping


@dataclass
class BookmarkRecord:
    id: Any
    url: str
    title: str
    created_at: str = ""
    user_id: Any = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "BookmarkRecord":
        return cls(
            id=payload["id"],
            url=payload.get("url") or "",
            title=payload.get("title") or "",
            created_at=payload.get("created_at") or "",
            user_id=payload.get("user_id"),
        )


def replace_all(records: Iterable[BookmarkRecord]) -> list[BookmarkRecord]:
    return list(records)


def prepend(current: list[BookmarkRecord], record: BookmarkRecord) -> list[BookmarkRecord]:
    return [record, *current]


def prepend_if_absent(
    current: list[BookmarkRecord], record: BookmarkRecord
) -> list[BookmarkRecord]:
    if contains_id(current, record.id):
        return list(current)
    return prepend(current, record)


def remove_id(current: list[BookmarkRecord], record_id) -> list[BookmarkRecord]:
    return [item for item in current if item.id != record_id]


def contains_id(current: list[BookmarkRecord], record_id) -> bool:
    return any(item.id == record_id for item in current)


def index_of(current: list[BookmarkRecord], record_id) -> int | None:
    for index, item in enumerate(current):
        if item.id == record_id:
            return index
    return None


def restore_at(
    current: list[BookmarkRecord], record: BookmarkRecord, index: int
) -> list[BookmarkRecord]:
    if contains_id(current, record.id):
        return list(current)
    index = max(0, min(index, len(current)))
    return [*current[:index], record, *current[index:]]
