"""Store factory for creating the remote document store."""

from typing import Any, Dict, Optional
from career_roadmap.stores.base_store import DocumentStore


def create_store(backend: str = "firestore", store_config: Optional[Dict[str, Any]] = None) -> DocumentStore:
    """Factory function to create a document store based on type.

    Args:
        backend: Type of store to create ("firestore" or "memory")
        store_config: Firebase configuration, used by the firestore backend

    Returns:
        DocumentStore instance

    Raises:
        ValueError: If backend is not supported
    """
    backend = backend.lower()

    if backend == "memory":
        from career_roadmap.stores.memory_store import MemoryDocumentStore
        return MemoryDocumentStore()
    elif backend == "firestore":
        from career_roadmap.stores.firestore_store import FirestoreDocumentStore
        return FirestoreDocumentStore.from_config(store_config or {})
    else:
        raise ValueError(
            f"Unsupported store backend: '{backend}'. "
            f"Supported backends are: 'firestore', 'memory'"
        )


__all__ = ["create_store", "DocumentStore"]
