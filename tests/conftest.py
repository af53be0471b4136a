import asyncio

import pytest

from app import create_app
from app.config import TestConfig
from app.dashboard.contracts import BackendError, ChangeEvent, Identity, Subscription
from app.extensions import db


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.drop_all()
        db.create_all()
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


class FakeAuth:
    def __init__(self, identity=None):
        self.identity = identity
        self.fail = False
        self.lookups = 0
        self.ended = False

    async def current_identity(self):
        self.lookups += 1
        if self.fail:
            raise BackendError("auth unavailable")
        return self.identity

    async def end_session(self):
        self.ended = True
        self.identity = None


class FakeStore:
    def __init__(self, rows=None):
        self.rows = list(rows or [])
        self.calls = []
        self.fail = set()
        self.gates = {}
        self.insert_result = None
        self.next_id = 100

    def hold(self, operation):
        gate = asyncio.Event()
        self.gates[operation] = gate
        return gate

    async def _complete(self, operation):
        gate = self.gates.get(operation)
        if gate is not None:
            await gate.wait()
        if operation in self.fail:
            raise BackendError(f"{operation} failed")

    async def query(self, table, filters, order):
        self.calls.append(("query", table, dict(filters), order))
        await self._complete("query")
        return [dict(row) for row in self.rows]

    async def insert(self, table, fields):
        self.calls.append(("insert", table, dict(fields)))
        await self._complete("insert")
        if self.insert_result is not None:
            return dict(self.insert_result)
        row = {"id": self.next_id, "created_at": f"t{self.next_id}", **fields}
        self.next_id += 1
        return row

    async def delete(self, table, record_id):
        self.calls.append(("delete", table, record_id))
        await self._complete("delete")


class FakeFeed:
    def __init__(self):
        self.subscriptions = []
        self.unsubscribed = []
        self.auto_ready = True

    def subscribe(self, table, filters, on_event):
        subscription = Subscription(table=table, filters=dict(filters), on_event=on_event)
        if self.auto_ready:
            subscription.ready.set()
        self.subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription):
        subscription.closed = True
        subscription.ready.set()
        self.unsubscribed.append(subscription)

    @property
    def open_subscriptions(self):
        return [item for item in self.subscriptions if not item.closed]

    def emit(self, kind, record):
        for subscription in self.open_subscriptions:
            subscription.on_event(ChangeEvent(kind=kind, record=dict(record)))

    def emit_to(self, subscription, kind, record):
        subscription.on_event(ChangeEvent(kind=kind, record=dict(record)))


class FakeBackend:
    def __init__(self, identity=None, rows=None):
        self.auth = FakeAuth(identity)
        self.store = FakeStore(rows)
        self.feed = FakeFeed()
        self.closed = False

    async def aclose(self):
        self.closed = True


@pytest.fixture
def identity():
    return Identity(id="user-1", email="me@example.com")


@pytest.fixture
def backend(identity):
    return FakeBackend(identity=identity)


@pytest.fixture
def signed_out_backend():
    return FakeBackend(identity=None)
