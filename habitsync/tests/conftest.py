"""
Shared fixtures for the habitsync tests.
"""
import asyncio
import os
import tempfile

# Must be set before habitsync.database / habitsync.main are imported
os.environ.setdefault("HABITSYNC_DATABASE_URL", "sqlite://")
os.environ.setdefault("HABITSYNC_LOG_DIR", tempfile.mkdtemp(prefix="habitsync-logs-"))

import pytest
from sqlalchemy.orm import sessionmaker

from habitsync import models  # noqa: F401  (registers the documents table)
from habitsync.database import Base, build_engine
from habitsync.exceptions import CollaboratorError
from habitsync.schemas import Backup, Habit, HabitSnapshot
from habitsync.services.backup_store import BackupStore
from habitsync.services.collection_client import ScopedCollectionClient, Subscription
from habitsync.services.habit_store import HabitRecordStore


class FakeCollectionClient(ScopedCollectionClient):
    """
    Scripted collection client.

    Documents live in plain dicts. With auto_push on, every mutation pushes
    fresh result sets to the open subscriptions; with it off, tests decide
    when snapshots are delivered by calling push().
    """

    def __init__(self):
        self.documents = {}
        self.subscriptions = []
        self.calls = []
        self.fail_next = {}
        self.auto_push = True
        self._counter = 0

    def seed(self, collection, record):
        self._counter += 1
        doc_id = record.get("id") or f"seed{self._counter}"
        self.documents.setdefault(collection, {})[doc_id] = {**record, "id": doc_id}
        return doc_id

    def snapshot_for(self, subscription):
        records = list(self.documents.get(subscription.collection, {}).values())
        return subscription.arrange(records)

    def push(self, collection=None):
        for subscription in self.subscriptions:
            if subscription.cancelled:
                continue
            if collection is None or subscription.collection == collection:
                subscription.publish(self.snapshot_for(subscription))

    def calls_to(self, operation):
        return [c for c in self.calls if c[0] == operation]

    def _maybe_fail(self, operation):
        remaining = self.fail_next.get(operation, 0)
        if remaining:
            self.fail_next[operation] = remaining - 1
            raise CollaboratorError(operation, "remote unavailable")

    async def subscribe(self, collection, filters=None, order_key=None, descending=False):
        self.calls.append(("subscribe", collection, dict(filters or {})))
        self._maybe_fail("subscribe")
        subscription = Subscription(collection, filters, order_key, descending)
        self.subscriptions.append(subscription)
        if self.auto_push:
            subscription.publish(self.snapshot_for(subscription))
        return subscription

    async def insert(self, collection, record):
        self.calls.append(("insert", collection, dict(record)))
        self._maybe_fail("insert")
        self._counter += 1
        doc_id = f"doc{self._counter}"
        self.documents.setdefault(collection, {})[doc_id] = {**record, "id": doc_id}
        if self.auto_push:
            self.push(collection)
        return doc_id

    async def update(self, collection, doc_id, fields):
        self.calls.append(("update", collection, doc_id, dict(fields)))
        self._maybe_fail("update")
        documents = self.documents.setdefault(collection, {})
        if doc_id not in documents:
            raise CollaboratorError("update", f"no document {doc_id}")
        documents[doc_id] = {**documents[doc_id], **fields}
        if self.auto_push:
            self.push(collection)

    async def delete(self, collection, doc_id):
        self.calls.append(("delete", collection, doc_id))
        self._maybe_fail("delete")
        self.documents.get(collection, {}).pop(doc_id, None)
        if self.auto_push:
            self.push(collection)


async def drain(rounds: int = 20):
    """Let pending consumer tasks run"""
    for _ in range(rounds):
        await asyncio.sleep(0)


def habit_doc(title="Read", month="March", year=2025, checks=None, created_at=1, **extra):
    """Wire-format habit document"""
    return {
        "title": title,
        "color": "#34d399",
        "month": month,
        "year": year,
        "order": 0,
        "streak": 0,
        "checks": checks if checks is not None else [False] * 30,
        "createdAt": created_at,
        **extra,
    }


def make_habit(habit_id="h1", checks=None, category=None, title="Read"):
    """Habit model for the analytics tests"""
    return Habit(
        id=habit_id,
        title=title,
        month="March",
        year=2025,
        checks=checks if checks is not None else [False] * 30,
        category=category,
    )


def make_backup(month="March", year=2025, habit_checks=(), backup_id="b1", created_at=1):
    """Backup holding one snapshot per checks list"""
    return Backup(
        id=backup_id,
        month=month,
        year=year,
        habits=[HabitSnapshot(title=f"H{i}", checks=c) for i, c in enumerate(habit_checks)],
        created_at=created_at,
    )


def checks_with(done: int, length: int = 30):
    """Checks array with the first `done` days completed"""
    return [i < done for i in range(length)]


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def client():
    return FakeCollectionClient()


@pytest.fixture
async def store(client):
    """Habit store with instant backoff"""
    habit_store = HabitRecordStore(client, backoff_base=0, backoff_max=0)
    yield habit_store
    await habit_store.close()


@pytest.fixture
async def backup_store(client):
    backups = BackupStore(client, backoff_base=0, backoff_max=0)
    yield backups
    await backups.close()


@pytest.fixture
def session_factory():
    """Session factory bound to a fresh in-memory database"""
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()
