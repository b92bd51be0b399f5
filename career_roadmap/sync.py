"""Mirrors the per-user career plan between the session and the document store."""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Callable, Optional

from career_roadmap.models import PlanRecord
from career_roadmap.schema import ParseFailure
from career_roadmap.stores.base_store import Document, DocumentStore

logger = logging.getLogger(__name__)

PLAN_DOCUMENT = "career_plan"


class PersistenceError(RuntimeError):
    """The document store reported an error while watching a plan."""


def decode_record(data: Optional[Document]) -> Optional[PlanRecord]:
    """Stored document -> PlanRecord. A malformed stored roadmap is dropped, not half-loaded."""
    if data is None:
        return None
    try:
        return PlanRecord.from_dict(data)
    except ParseFailure as e:
        logger.warning("Stored roadmap is malformed, ignoring it: %s", e)
        return PlanRecord.from_dict({k: v for k, v in data.items() if k != "roadmap"})


class PlanSubscription:
    """Cancellable stream of PlanRecord snapshots for one identity.

    Only the latest snapshot is kept; a consumer that falls behind skips
    intermediate values. Iterating again starts over from the latest
    snapshot. After cancel() nothing more is delivered.
    """

    def __init__(self, identity: str, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.identity = identity
        self._loop = loop or asyncio.get_running_loop()
        self._latest: Optional[PlanRecord] = None
        self._version = 0
        self._error: Optional[Exception] = None
        self._changed = asyncio.Event()
        self._cancelled = False
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def attach(self, unsubscribe: Callable[[], None]) -> None:
        if self._cancelled:
            unsubscribe()
        else:
            self._unsubscribe = unsubscribe

    def push(self, record: Optional[PlanRecord]) -> None:
        """Hand a snapshot over from any thread."""
        self._schedule(self._set_latest, record)

    def fail(self, error: Exception) -> None:
        self._schedule(self._set_error, error)

    def _schedule(self, fn, arg) -> None:
        if self._cancelled:
            return
        try:
            self._loop.call_soon_threadsafe(fn, arg)
        except RuntimeError:
            # loop already closed
            logger.debug("Dropping snapshot for %s, event loop is closed", self.identity)

    def _set_latest(self, record: Optional[PlanRecord]) -> None:
        if self._cancelled:
            return
        self._latest = record
        self._version += 1
        self._changed.set()

    def _set_error(self, error: Exception) -> None:
        if self._cancelled:
            return
        self._error = error
        self._changed.set()

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._unsubscribe is not None:
            try:
                self._unsubscribe()
            except Exception:
                logger.exception("Failed to stop watching plan for %s", self.identity)
            self._unsubscribe = None
        self._changed.set()

    def __aiter__(self) -> AsyncIterator[Optional[PlanRecord]]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Optional[PlanRecord]]:
        seen = 0
        while not self._cancelled:
            if self._version > seen:
                seen = self._version
                yield self._latest
                continue
            if self._error is not None:
                raise PersistenceError(str(self._error)) from self._error
            self._changed.clear()
            await self._changed.wait()


class PlanSync:
    """Sole reader and writer of the remote plan document.

    With no store configured every operation is inert: subscriptions report
    the document as absent and commits report failure.
    """

    def __init__(self, store: Optional[DocumentStore], app_id: str):
        self.store = store
        self.app_id = app_id

    def document_path(self, identity: str) -> str:
        return f"artifacts/{self.app_id}/users/{identity}/data/{PLAN_DOCUMENT}"

    def subscribe(self, identity: str) -> PlanSubscription:
        """Start watching the plan for identity. Must be called on the event loop."""
        subscription = PlanSubscription(identity)

        if self.store is None:
            subscription.push(None)
            return subscription

        def on_snapshot(data: Optional[Document]) -> None:
            subscription.push(decode_record(data))

        def on_error(error: Exception) -> None:
            logger.error("Plan subscription error for %s: %s", identity, error)
            subscription.fail(error)

        path = self.document_path(identity)
        try:
            unsubscribe = self.store.watch(path, on_snapshot, on_error)
        except Exception as e:
            logger.exception("Could not watch %s", path)
            subscription.fail(e)
        else:
            subscription.attach(unsubscribe)
            logger.info("Watching %s", path)
        return subscription

    async def commit(self, identity: str, record: PlanRecord) -> bool:
        """Overwrite the whole plan document. Last write wins.

        Returns:
            True if the store accepted the write
        """
        if self.store is None:
            logger.warning("No document store configured, plan for %s not saved", identity)
            return False

        path = self.document_path(identity)
        try:
            await asyncio.to_thread(self.store.set, path, record.to_dict())
        except Exception:
            logger.exception("Failed to save plan to %s", path)
            return False

        logger.info("Saved plan to %s", path)
        return True

    async def load(self, identity: str) -> Optional[PlanRecord]:
        """One-off read of the current plan, without subscribing."""
        if self.store is None:
            return None
        path = self.document_path(identity)
        data = await asyncio.to_thread(self.store.get, path)
        return decode_record(data)
