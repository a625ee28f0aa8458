"""
Scoped collection client contract.

A collection client owns the remote document store. The record stores only
talk to it through this interface: subscribe to a filtered, ordered query and
receive full result sets, or mutate single documents by id.
"""
import asyncio
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from habitsync.exceptions import SubscriptionError

_CLOSED = object()


class Subscription:
    """
    Cancellable channel of full-result-set snapshots for one query.

    The client side calls publish() or fail(); the consumer iterates with
    ``async for snapshot in subscription``. Iteration ends after cancel() and
    raises SubscriptionError when a failure is delivered.
    """

    def __init__(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        order_key: Optional[str] = None,
        descending: bool = False,
        on_cancel: Optional[Callable[["Subscription"], None]] = None,
    ):
        self.collection = collection
        self.filters = dict(filters or {})
        self.order_key = order_key
        self.descending = descending
        self._on_cancel = on_cancel
        self._queue: asyncio.Queue = asyncio.Queue()
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def matches(self, record: Dict[str, Any]) -> bool:
        """True when the record satisfies every equality filter"""
        return all(record.get(key) == value for key, value in self.filters.items())

    def arrange(self, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Filter and order records the way this query asks for"""
        selected = [r for r in records if self.matches(r)]
        if self.order_key:
            selected.sort(key=lambda r: r.get(self.order_key) or 0, reverse=self.descending)
        return selected

    def publish(self, documents: List[Dict[str, Any]]) -> None:
        """Deliver the complete current result set"""
        if self._cancelled:
            return
        self._queue.put_nowait([dict(d) for d in documents])

    def fail(self, error: Exception) -> None:
        """Deliver a stream failure to the consumer"""
        if self._cancelled:
            return
        self._queue.put_nowait(error)

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._queue.put_nowait(_CLOSED)
        if self._on_cancel:
            self._on_cancel(self)

    def __aiter__(self):
        return self

    async def __anext__(self) -> List[Dict[str, Any]]:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        if isinstance(item, Exception):
            raise SubscriptionError(self.collection, str(item))
        return item


class ScopedCollectionClient(ABC):
    """Subscribe to and mutate named remote collections"""

    @abstractmethod
    async def subscribe(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        order_key: Optional[str] = None,
        descending: bool = False,
    ) -> Subscription:
        """
        Open a live query.

        Each event carries the complete matching set, not a diff.

        Raises:
            CollaboratorError: If the query cannot be opened
        """

    @abstractmethod
    async def insert(self, collection: str, record: Dict[str, Any]) -> str:
        """
        Create a document and return its assigned id.

        Raises:
            CollaboratorError: If the write fails
        """

    @abstractmethod
    async def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        """
        Shallow-merge fields into an existing document (no schema validation).

        Raises:
            CollaboratorError: If the write fails or the document is missing
        """

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        """
        Permanently delete a document.

        Raises:
            CollaboratorError: If the delete fails
        """
