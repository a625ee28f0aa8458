"""
Projection store base.

Keeps an in-memory projection of one live collection query. Handles the
subscription lifecycle, fencing of stale events, re-subscription with
exponential backoff and non-fatal mutations.
"""
import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from habitsync.constants import (
    SUBSCRIBE_RETRY_ATTEMPTS,
    SUBSCRIBE_BACKOFF_BASE,
    SUBSCRIBE_BACKOFF_MAX,
    MUTATION_RETRY_ATTEMPTS,
)
from habitsync.exceptions import CollaboratorError, MutationError, SubscriptionError
from habitsync.schemas import MutationResult
from habitsync.services.collection_client import ScopedCollectionClient, Subscription


class StoreState(str, Enum):
    IDLE = "idle"
    SUBSCRIBING = "subscribing"
    LIVE = "live"
    CLOSED = "closed"


class ProjectionStore:
    """
    Owns the projection of a single query against one collection.

    Every subscription runs under a generation number (fencing token).
    Snapshots are applied only while their token is still the current one,
    so events from a superseded query are dropped even if the client keeps
    delivering them after cancellation.
    """

    collection: str = ""
    logger = logging.getLogger("habitsync.store")

    def __init__(
        self,
        client: ScopedCollectionClient,
        retry_attempts: int = SUBSCRIBE_RETRY_ATTEMPTS,
        backoff_base: float = SUBSCRIBE_BACKOFF_BASE,
        backoff_max: float = SUBSCRIBE_BACKOFF_MAX,
        mutation_retries: int = MUTATION_RETRY_ATTEMPTS,
    ):
        self.client = client
        self.retry_attempts = retry_attempts
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.mutation_retries = mutation_retries

        self._state = StoreState.IDLE
        self._loading = False
        self._generation = 0
        self._records: Tuple[Any, ...] = ()
        self._subscription: Optional[Subscription] = None
        self._task: Optional[asyncio.Task] = None
        self._live = asyncio.Event()

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def generation(self) -> int:
        return self._generation

    def _parse(self, documents: List[Dict[str, Any]]) -> Tuple[Any, ...]:
        """Turn a pushed result set into projection records"""
        raise NotImplementedError

    def _backoff_delay(self, attempt: int) -> float:
        return min(self.backoff_max, self.backoff_base * (2 ** attempt))

    # === Subscription lifecycle ===

    async def _open(self, filters: Dict[str, Any], order_key: str, descending: bool = False) -> None:
        """Replace any running subscription with a new query"""
        token = await self._teardown()
        if token != self._generation:
            # Superseded by a later _open or close while tearing down
            return

        self._state = StoreState.SUBSCRIBING
        self._loading = True
        # Wake waiters on the old event; they re-check against the new one
        self._live.set()
        self._live = asyncio.Event()
        self._task = asyncio.create_task(self._run(token, filters, order_key, descending))

    async def _teardown(self) -> int:
        """
        Fence, cancel and wait for the current subscription to finish.

        Returns:
            The fencing token produced by this teardown
        """
        self._generation += 1
        token = self._generation

        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None

        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        return token

    async def _run(self, token: int, filters: Dict[str, Any], order_key: str, descending: bool) -> None:
        attempt = 0
        while token == self._generation:
            try:
                subscription = await self.client.subscribe(
                    self.collection, filters, order_key, descending
                )
            except CollaboratorError as e:
                error: Exception = e
            else:
                if token != self._generation:
                    subscription.cancel()
                    return
                self._subscription = subscription
                try:
                    async for documents in subscription:
                        if self._apply(token, documents):
                            attempt = 0
                    return
                except SubscriptionError as e:
                    error = e
                finally:
                    subscription.cancel()
                    if self._subscription is subscription:
                        self._subscription = None

            # Keep the last projection; only the loading flag is cleared
            self.logger.error(f"Live query on '{self.collection}' lost: {error}")
            self._loading = False

            if attempt >= self.retry_attempts:
                self.logger.error(
                    f"Giving up on '{self.collection}' after {attempt} re-subscribe attempts"
                )
                return

            delay = self._backoff_delay(attempt)
            attempt += 1
            self.logger.info(
                f"Re-subscribing to '{self.collection}' in {delay:.2f}s "
                f"(attempt {attempt}/{self.retry_attempts})"
            )
            await asyncio.sleep(delay)

    def _apply(self, token: int, documents: List[Dict[str, Any]]) -> bool:
        """Replace the projection with a snapshot unless its token is stale"""
        if token != self._generation or self._state is StoreState.CLOSED:
            self.logger.debug(
                f"Dropped stale '{self.collection}' snapshot "
                f"(generation {token}, current {self._generation})"
            )
            return False

        self._records = self._parse(documents)
        self._state = StoreState.LIVE
        self._loading = False
        self._live.set()
        return True

    async def wait_until_live(self, timeout: Optional[float] = None) -> None:
        """Wait for the first snapshot of the current subscription"""
        await asyncio.wait_for(self._wait_live(), timeout)

    async def _wait_live(self) -> None:
        while True:
            event = self._live
            await event.wait()
            if event is self._live or self._state is StoreState.CLOSED:
                return

    async def close(self) -> None:
        """Cancel the subscription; later events are dropped"""
        await self._teardown()
        self._state = StoreState.CLOSED
        self._loading = False
        self._live.set()

    # === Mutations ===

    async def _mutate(
        self,
        operation: str,
        call: Callable[[], Awaitable[Any]],
        retries: int = 0,
    ) -> MutationResult:
        """
        Run one collaborator call and report the outcome.

        Failures are logged and returned, never raised. The projection is not
        touched either way; it changes with the next pushed snapshot.

        Args:
            operation: Label used in logs
            call: Zero-argument coroutine factory performing the write
            retries: Extra attempts for idempotent writes

        Returns:
            MutationResult; ``id`` is set when the call returns one
        """
        if self._state is StoreState.CLOSED:
            self.logger.warning(f"Ignored {operation}: store is closed")
            return MutationResult(ok=False, error="store is closed")

        attempt = 0
        while True:
            try:
                result = await call()
            except CollaboratorError as e:
                if attempt >= retries:
                    self.logger.error(f"Error during {operation}: {e}")
                    return MutationResult(ok=False, error=str(MutationError(operation, e.details)))
                delay = self._backoff_delay(attempt)
                attempt += 1
                self.logger.warning(f"Retrying {operation} in {delay:.2f}s: {e}")
                await asyncio.sleep(delay)
            else:
                return MutationResult(ok=True, id=result if isinstance(result, str) else None)
