"""
Collection client backed by a SQLAlchemy documents table.

Every mutation made through the client re-runs the queries of the open
subscriptions on the same collection and pushes their full result sets.
Sessions are synchronous, so all database work runs in the threadpool and
the event loop only publishes the results.
"""
import asyncio
import logging
import uuid
from typing import Any, Dict, List, Optional
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from habitsync.database import SessionLocal
from habitsync.exceptions import CollaboratorError
from habitsync.repositories.document_repository import DocumentRepository
from habitsync.services.collection_client import ScopedCollectionClient, Subscription

logger = logging.getLogger("habitsync.collection")


class SqlCollectionClient(ScopedCollectionClient):
    """ScopedCollectionClient over a relational database"""

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self.session_factory = session_factory
        self.repo = DocumentRepository()
        self._subscriptions: List[Subscription] = []
        self._db_lock = asyncio.Lock()

    def _session(self) -> Session:
        return self.session_factory()

    def _query(self, db: Session, subscription: Subscription) -> List[Dict[str, Any]]:
        records = self.repo.get_records(db, subscription.collection)
        return subscription.arrange(records)

    def _read(self, subscriptions: List[Subscription]) -> List[List[Dict[str, Any]]]:
        """Current result set of each subscription, from one session"""
        db = self._session()
        try:
            return [self._query(db, s) for s in subscriptions]
        finally:
            db.close()

    def _create(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        db = self._session()
        try:
            self.repo.create(db, collection, doc_id, data)
        except SQLAlchemyError:
            db.rollback()
            raise
        finally:
            db.close()

    def _merge(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> bool:
        """Returns False when the document does not exist"""
        db = self._session()
        try:
            document = self.repo.get_by_id(db, collection, doc_id)
            if not document:
                return False
            self.repo.merge(db, document, fields)
            return True
        except SQLAlchemyError:
            db.rollback()
            raise
        finally:
            db.close()

    def _remove(self, collection: str, doc_id: str) -> bool:
        """Returns False when the document does not exist"""
        db = self._session()
        try:
            document = self.repo.get_by_id(db, collection, doc_id)
            if not document:
                return False
            self.repo.delete(db, document)
            return True
        except SQLAlchemyError:
            db.rollback()
            raise
        finally:
            db.close()

    async def _run_db(self, func, *args):
        """Run one synchronous unit of database work in the threadpool"""
        async with self._db_lock:
            return await run_in_threadpool(func, *args)

    async def _notify(self, collection: str) -> None:
        """Push fresh result sets to every open subscription on a collection"""
        # Serialized with all other database work, so result sets are
        # published in the order they were read
        async with self._db_lock:
            listeners = [s for s in self._subscriptions if s.collection == collection]
            if not listeners:
                return
            try:
                snapshots = await run_in_threadpool(self._read, listeners)
            except SQLAlchemyError as e:
                logger.error(f"Failed to refresh subscriptions on '{collection}': {e}")
                for subscription in listeners:
                    subscription.fail(e)
                return
            for subscription, records in zip(listeners, snapshots):
                subscription.publish(records)

    def _forget(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    async def subscribe(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        order_key: Optional[str] = None,
        descending: bool = False,
    ) -> Subscription:
        subscription = Subscription(
            collection,
            filters=filters,
            order_key=order_key,
            descending=descending,
            on_cancel=self._forget
        )
        async with self._db_lock:
            try:
                initial = (await run_in_threadpool(self._read, [subscription]))[0]
            except SQLAlchemyError as e:
                raise CollaboratorError("subscribe", str(e))
            self._subscriptions.append(subscription)
            subscription.publish(initial)

        logger.debug(f"Subscribed to '{collection}' filters={subscription.filters}")
        return subscription

    async def insert(self, collection: str, record: Dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        data = {k: v for k, v in record.items() if k != "id"}
        try:
            await self._run_db(self._create, collection, doc_id, data)
        except SQLAlchemyError as e:
            raise CollaboratorError("insert", str(e))

        await self._notify(collection)
        return doc_id

    async def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        try:
            found = await self._run_db(self._merge, collection, doc_id, fields)
        except SQLAlchemyError as e:
            raise CollaboratorError("update", str(e))
        if not found:
            raise CollaboratorError("update", f"no document {doc_id} in '{collection}'")

        await self._notify(collection)

    async def delete(self, collection: str, doc_id: str) -> None:
        try:
            found = await self._run_db(self._remove, collection, doc_id)
        except SQLAlchemyError as e:
            raise CollaboratorError("delete", str(e))
        if not found:
            # Deleting a missing document is not an error
            return

        await self._notify(collection)
