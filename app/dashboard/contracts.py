"""Collaborator contracts the dashboard view is written against.

The view never talks to Flask, SQLAlchemy or HTTP directly. It receives a
``BackendClient`` (auth + store + change feed) from a factory and only uses
the methods declared here.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Protocol


BOOKMARKS_TABLE = "bookmarks"

EVENT_INSERT = "insert"
EVENT_DELETE = "delete"
EVENT_OTHER = "other"

EVENT_KINDS = {EVENT_INSERT, EVENT_DELETE}


class BackendError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class Identity:
    id: Any
    email: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Identity":
        return cls(id=payload["id"], email=payload.get("email") or "")


@dataclass
class ChangeEvent:
    kind: str
    record: dict

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ChangeEvent":
        kind = (payload.get("kind") or "").lower()
        if kind not in EVENT_KINDS:
            kind = EVENT_OTHER
        return cls(kind=kind, record=dict(payload.get("record") or {}))

    def matches(self, filters: Mapping[str, Any]) -> bool:
        return all(self.record.get(key) == value for key, value in filters.items())


@dataclass(eq=False)
class Subscription:
    table: str
    filters: dict
    on_event: Callable[[ChangeEvent], None]
    closed: bool = False
    task: Any = field(default=None, repr=False)
    # Set once the feed is positioned; later changes are delivered.
    ready: asyncio.Event = field(default_factory=asyncio.Event, repr=False)


class AuthCollaborator(Protocol):
    async def current_identity(self) -> Identity | None: ...

    async def end_session(self) -> None: ...


class StoreCollaborator(Protocol):
    async def query(
        self, table: str, filters: Mapping[str, Any], order: tuple[str, bool]
    ) -> list[dict]: ...

    async def insert(self, table: str, fields: Mapping[str, Any]) -> dict: ...

    async def delete(self, table: str, record_id: Any) -> None: ...


class ChangeFeedCollaborator(Protocol):
    def subscribe(
        self,
        table: str,
        filters: Mapping[str, Any],
        on_event: Callable[[ChangeEvent], None],
    ) -> Subscription:
        """Start delivering changes; ``ready`` is set once the start point is fixed."""

    def unsubscribe(self, subscription: Subscription) -> None: ...


class BackendClient(Protocol):
    auth: AuthCollaborator
    store: StoreCollaborator
    feed: ChangeFeedCollaborator

    async def aclose(self) -> None: ...
