"""In-process document store, for local runs without Firebase."""

import copy
import logging
import threading
from typing import Dict, List, Optional, Tuple

from career_roadmap.stores.base_store import (
    Document,
    DocumentStore,
    ErrorCallback,
    SnapshotCallback,
    Unsubscribe,
)

logger = logging.getLogger(__name__)


class MemoryDocumentStore(DocumentStore):
    """Keeps documents in a dict and notifies watchers synchronously on set."""

    def __init__(self):
        self._docs: Dict[str, Document] = {}
        self._watchers: Dict[str, List[Tuple[SnapshotCallback, ErrorCallback]]] = {}
        self._lock = threading.Lock()

    def get(self, path: str) -> Optional[Document]:
        with self._lock:
            doc = self._docs.get(path)
            return copy.deepcopy(doc) if doc is not None else None

    def set(self, path: str, data: Document) -> None:
        with self._lock:
            self._docs[path] = copy.deepcopy(data)
            watchers = list(self._watchers.get(path, []))
        for on_snapshot, on_error in watchers:
            self._deliver(on_snapshot, on_error, copy.deepcopy(data))

    def watch(self, path: str, on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> Unsubscribe:
        entry = (on_snapshot, on_error)
        with self._lock:
            self._watchers.setdefault(path, []).append(entry)
            current = copy.deepcopy(self._docs.get(path))

        self._deliver(on_snapshot, on_error, current)

        def unsubscribe():
            with self._lock:
                watchers = self._watchers.get(path, [])
                if entry in watchers:
                    watchers.remove(entry)

        return unsubscribe

    @staticmethod
    def _deliver(on_snapshot: SnapshotCallback, on_error: ErrorCallback, data: Optional[Document]) -> None:
        try:
            on_snapshot(data)
        except Exception as e:
            logger.exception("Watcher callback failed")
            on_error(e)
