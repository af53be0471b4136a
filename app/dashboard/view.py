"""Async dashboard view: one signed-in identity, one in-memory bookmark list.

Three sources mutate ``bookmarks``: the initial fetch (full replace), change
feed events, and user mutations. Nothing orders them against each other, so
every change except the fetch is applied as a merge into whatever the list
holds at that moment.

By default the view keeps the plain semantics: feed inserts are prepended even
when the record is already listed, and a failed delete is not rolled back.
``dedupe_inserts`` and ``rollback_failed_deletes`` switch on reconciliation by
``id``.
"""
from __future__ import annotations

import functools
import logging
from typing import Callable

from app.dashboard.contracts import (
    BOOKMARKS_TABLE,
    EVENT_DELETE,
    EVENT_INSERT,
    BackendClient,
    BackendError,
    ChangeEvent,
    Identity,
)
from app.dashboard.reconcile import (
    BookmarkRecord,
    contains_id,
    index_of,
    prepend,
    prepend_if_absent,
    remove_id,
    replace_all,
    restore_at,
)
from app.services.common import is_url_shaped


logger = logging.getLogger(__name__)

PUBLIC_ENTRY = "/"
FETCH_ORDER = ("created_at", True)


class DashboardView:
    def __init__(
        self,
        connect: Callable[[], BackendClient],
        navigate: Callable[[str], None] | None = None,
        dedupe_inserts: bool = False,
        rollback_failed_deletes: bool = False,
    ):
        self._connect = connect
        self._navigate = navigate or (lambda path: None)
        self.dedupe_inserts = dedupe_inserts
        self.rollback_failed_deletes = rollback_failed_deletes

        self.identity: Identity | None = None
        self.bookmarks: list[BookmarkRecord] = []
        self.url = ""
        self.title = ""
        self.loading = False
        self.active = False

        self._client: BackendClient | None = None
        self._subscription = None
        self._generation = 0
        self._tombstones: set = set()
        self._listeners: list[Callable[[], None]] = []

    def on_change(self, callback: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def remove():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return remove

    async def activate(self) -> None:
        if self.active:
            return
        self.active = True
        self._generation += 1
        generation = self._generation
        self._client = self._connect()

        identity = await self._resolve_identity()
        if not self._is_current(generation):
            return
        await self._apply_identity(identity)

    async def deactivate(self) -> None:
        if not self.active:
            return
        self.active = False
        self._generation += 1
        self._release_channel()
        self.identity = None
        self.bookmarks = []
        self._tombstones.clear()
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    async def submit(self) -> BookmarkRecord | None:
        """Create a bookmark from the ``url``/``title`` fields.

        The record is only listed once the store returns it. The fields are
        cleared whether or not the insert succeeded.
        """
        url = self.url.strip()
        title = self.title.strip()
        identity = self.identity
        if not url or not title or identity is None or self._client is None:
            return None
        if not is_url_shaped(url):
            return None

        generation = self._generation
        self.loading = True
        created = None
        try:
            row = await self._client.store.insert(
                BOOKMARKS_TABLE, {"url": url, "title": title, "user_id": identity.id}
            )
            created = BookmarkRecord.from_payload(row)
        except BackendError as exc:
            logger.warning("bookmark insert failed: %s", exc)
        finally:
            self.loading = False

        if not self._is_current(generation):
            return None
        if created is not None:
            if self.dedupe_inserts:
                self.bookmarks = prepend_if_absent(self.bookmarks, created)
            else:
                self.bookmarks = prepend(self.bookmarks, created)
        self.url = ""
        self.title = ""
        self._notify()
        return created

    async def delete_bookmark(self, bookmark_id) -> bool:
        if self.identity is None or self._client is None:
            return False

        generation = self._generation
        index = index_of(self.bookmarks, bookmark_id)
        removed = self.bookmarks[index] if index is not None else None
        if self.dedupe_inserts:
            self._tombstones.add(bookmark_id)
        self._set_bookmarks(remove_id(self.bookmarks, bookmark_id))

        try:
            await self._client.store.delete(BOOKMARKS_TABLE, bookmark_id)
        except BackendError as exc:
            logger.warning("bookmark delete failed for %s: %s", bookmark_id, exc)
            if self._is_current(generation) and self.rollback_failed_deletes:
                self._tombstones.discard(bookmark_id)
                if removed is not None:
                    self._set_bookmarks(restore_at(self.bookmarks, removed, index))
            return False
        return True

    async def logout(self) -> None:
        if self._client is None:
            return
        try:
            await self._client.auth.end_session()
        except BackendError as exc:
            logger.warning("ending session failed: %s", exc)
        await self._apply_identity(None)
        self._navigate(PUBLIC_ENTRY)

    async def _resolve_identity(self) -> Identity | None:
        try:
            return await self._client.auth.current_identity()
        except BackendError as exc:
            logger.warning("identity lookup failed, treating as signed out: %s", exc)
            return None

    async def _apply_identity(self, identity: Identity | None) -> None:
        if _same_identity(self.identity, identity):
            return

        self._release_channel()
        self._generation += 1
        generation = self._generation
        self.identity = identity
        self._tombstones.clear()
        self._set_bookmarks([])
        if identity is None:
            return

        subscription = self._client.feed.subscribe(
            BOOKMARKS_TABLE,
            {"user_id": identity.id},
            functools.partial(self._handle_change, generation),
        )
        self._subscription = subscription
        # The snapshot must not predate the feed's start point.
        await subscription.ready.wait()
        if not self._is_current(generation):
            return
        await self._fetch(identity, generation)

    async def _fetch(self, identity: Identity, generation: int) -> None:
        try:
            rows = await self._client.store.query(
                BOOKMARKS_TABLE, {"user_id": identity.id}, FETCH_ORDER
            )
        except BackendError as exc:
            logger.warning("bookmark fetch failed: %s", exc)
            return
        if not self._is_current(generation):
            return

        records = [BookmarkRecord.from_payload(row) for row in rows or []]
        if self.dedupe_inserts:
            records = [item for item in records if item.id not in self._tombstones]
        self._set_bookmarks(replace_all(records))

    def _handle_change(self, generation: int, event: ChangeEvent) -> None:
        if not self._is_current(generation) or self.identity is None:
            return

        if event.kind == EVENT_INSERT:
            record = BookmarkRecord.from_payload(event.record)
            if self.dedupe_inserts and (
                record.id in self._tombstones or contains_id(self.bookmarks, record.id)
            ):
                logger.debug("dropping feed insert for known bookmark %s", record.id)
                return
            self._set_bookmarks(prepend(self.bookmarks, record))
        elif event.kind == EVENT_DELETE:
            record_id = event.record.get("id")
            if self.dedupe_inserts:
                self._tombstones.add(record_id)
            self._set_bookmarks(remove_id(self.bookmarks, record_id))

    def _release_channel(self) -> None:
        subscription, self._subscription = self._subscription, None
        if subscription is not None and self._client is not None:
            self._client.feed.unsubscribe(subscription)

    def _is_current(self, generation: int) -> bool:
        return self.active and generation == self._generation

    def _set_bookmarks(self, records: list[BookmarkRecord]) -> None:
        self.bookmarks = records
        self._notify()

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback()
            except Exception as exc:
                logger.warning("dashboard listener failed: %s", exc, exc_info=True)


def _same_identity(left: Identity | None, right: Identity | None) -> bool:
    if left is None or right is None:
        return left is right
    return left.id == right.id
