"""Abstract base class for remote document stores."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

Document = Dict[str, Any]
SnapshotCallback = Callable[[Optional[Document]], None]
ErrorCallback = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


class DocumentStore(ABC):
    """A store of whole documents addressed by slash-separated paths.

    Methods are blocking; callers on the event loop run them in a thread.
    Watch callbacks may fire on any thread.
    """

    @abstractmethod
    def get(self, path: str) -> Optional[Document]:
        """Read a document.

        Returns:
            The document data, or None if it does not exist
        """
        pass

    @abstractmethod
    def set(self, path: str, data: Document) -> None:
        """Overwrite the whole document at path."""
        pass

    @abstractmethod
    def watch(self, path: str, on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> Unsubscribe:
        """Listen to a document.

        The current value is delivered first, then every change. None is
        delivered while the document does not exist.

        Returns:
            A callable that stops the listener
        """
        pass
