from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Mapping
from urllib.parse import urlparse

import httpx

from app.dashboard.contracts import (
    BOOKMARKS_TABLE,
    BackendError,
    ChangeEvent,
    Identity,
    Subscription,
)


logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
DEFAULT_TIMEOUT = 10.0
DEFAULT_POLL_INTERVAL = 1.0


def build_base_url(address: str) -> str:
    trimmed = address.strip().rstrip("/")
    if not trimmed:
        return ""
    parsed = urlparse(trimmed)
    if parsed.scheme:
        return trimmed
    return f"http://{trimmed}"


def _require_bookmarks_table(table: str) -> None:
    if table != BOOKMARKS_TABLE:
        raise BackendError(f"unsupported table: {table}")


class RemoteBackend:
    """Backend client speaking the Smart Bookmarks JSON API over httpx."""

    def __init__(
        self,
        address: str,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.token = token
        self._http = httpx.AsyncClient(
            base_url=build_base_url(address) + API_PREFIX,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )
        self.auth = RemoteAuth(self)
        self.store = RemoteStore(self)
        self.feed = RemoteChangeFeed(self, poll_interval=poll_interval)

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: dict | None = None,
        params: dict | None = None,
    ) -> dict:
        headers = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            response = await self._http.request(
                method, path, json=json, params=params, headers=headers
            )
        except httpx.HTTPError as exc:
            raise BackendError(f"{method} {path} failed: {exc}") from exc

        try:
            payload = response.json() if response.content else {}
        except ValueError:
            snippet = response.text[:240].strip()
            payload = {"error": f"non_json_response: {snippet}" if snippet else "non_json_response"}

        if response.status_code >= 400:
            message = payload.get("error") if isinstance(payload, dict) else None
            raise BackendError(
                message or f"{method} {path} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        if not isinstance(payload, dict):
            raise BackendError(f"unexpected_json_type: {type(payload).__name__}")
        return payload

    async def sign_in(self, email: str, password: str) -> str:
        payload = await self.request(
            "POST", "/auth/token", json={"email": email, "password": password}
        )
        self.token = payload["token"]
        return self.token

    async def aclose(self) -> None:
        self.feed.close_all()
        await self._http.aclose()


class RemoteAuth:
    def __init__(self, backend: RemoteBackend):
        self._backend = backend

    async def current_identity(self) -> Identity | None:
        if not self._backend.token:
            return None
        try:
            payload = await self._backend.request("GET", "/me")
        except BackendError as exc:
            if exc.status_code == 401:
                return None
            raise
        return Identity.from_payload(payload)

    async def end_session(self) -> None:
        if not self._backend.token:
            return
        try:
            await self._backend.request("DELETE", "/auth/token")
        finally:
            self._backend.token = None


class RemoteStore:
    def __init__(self, backend: RemoteBackend):
        self._backend = backend

    async def query(
        self, table: str, filters: Mapping[str, Any], order: tuple[str, bool]
    ) -> list[dict]:
        """Bookmarks of the signed-in user.

        The server scopes rows to the token's user and returns them newest
        first; ``filters`` are re-checked here and ascending order is served by
        reversing the page.
        """
        _require_bookmarks_table(table)
        column, descending = order
        if column != "created_at":
            raise BackendError(f"unsupported order column: {column}")
        payload = await self._backend.request("GET", "/bookmarks")
        rows = [
            row
            for row in payload.get("items") or []
            if all(row.get(key) == value for key, value in filters.items())
        ]
        if not descending:
            rows.reverse()
        return rows

    async def insert(self, table: str, fields: Mapping[str, Any]) -> dict:
        _require_bookmarks_table(table)
        return await self._backend.request(
            "POST",
            "/bookmarks",
            json={"url": fields.get("url"), "title": fields.get("title")},
        )

    async def delete(self, table: str, record_id) -> None:
        _require_bookmarks_table(table)
        try:
            await self._backend.request("DELETE", f"/bookmarks/{record_id}")
        except BackendError as exc:
            # Already gone counts as deleted.
            if exc.status_code != 404:
                raise


class RemoteChangeFeed:
    """Change feed emulated by polling ``/changes`` from the head cursor."""

    def __init__(self, backend: RemoteBackend, poll_interval: float):
        self._backend = backend
        self._poll_interval = poll_interval
        self._subscriptions: set[Subscription] = set()

    def subscribe(
        self,
        table: str,
        filters: Mapping[str, Any],
        on_event: Callable[[ChangeEvent], None],
    ) -> Subscription:
        _require_bookmarks_table(table)
        subscription = Subscription(table=table, filters=dict(filters), on_event=on_event)
        subscription.task = asyncio.get_running_loop().create_task(
            self._poll(subscription), name=f"change-feed-{table}"
        )
        subscription.task.add_done_callback(_log_poll_exit)
        self._subscriptions.add(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscription.closed = True
        subscription.ready.set()
        self._subscriptions.discard(subscription)
        if subscription.task is not None:
            subscription.task.cancel()

    def close_all(self) -> None:
        for subscription in list(self._subscriptions):
            self.unsubscribe(subscription)

    async def _poll(self, subscription: Subscription) -> None:
        """Deliver changes committed after the head cursor read at start.

        ``ready`` is set after the first head read, whether or not it succeeded.
        """
        cursor = None
        while not subscription.closed:
            has_more = False
            try:
                if cursor is None:
                    try:
                        payload = await self._backend.request("GET", "/changes/head")
                        cursor = _parse_cursor(payload.get("cursor"), 0)
                    finally:
                        subscription.ready.set()
                else:
                    payload = await self._backend.request(
                        "GET", "/changes", params={"since": cursor}
                    )
                    next_cursor = _parse_cursor(payload.get("cursor"), cursor)
                    events = payload.get("events") or []
                    if not isinstance(events, list):
                        raise BackendError("malformed change page: events is not a list")
                    for item in events:
                        if subscription.closed:
                            return
                        self._deliver(subscription, item)
                    cursor = next_cursor
                    has_more = bool(payload.get("has_more"))
            except BackendError as exc:
                logger.warning("change feed poll failed: %s", exc)
            if not has_more:
                await asyncio.sleep(self._poll_interval)

    @staticmethod
    def _deliver(subscription: Subscription, item) -> None:
        if not isinstance(item, dict):
            logger.warning("skipping malformed change event: %r", item)
            return
        try:
            event = ChangeEvent.from_payload(item)
            if event.matches(subscription.filters):
                subscription.on_event(event)
        except Exception as exc:
            logger.warning(
                "change feed event %s not applied: %s", item.get("cursor"), exc, exc_info=True
            )


def _parse_cursor(value, fallback: int) -> int:
    if value is None or value == "":
        return fallback
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise BackendError(f"malformed change cursor: {value!r}") from exc


def _log_poll_exit(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("change feed polling stopped: %s", exc, exc_info=exc)
