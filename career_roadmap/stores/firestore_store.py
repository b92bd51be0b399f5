"""Firestore-backed document store."""

import logging
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import credentials, firestore

from career_roadmap.stores.base_store import (
    Document,
    DocumentStore,
    ErrorCallback,
    SnapshotCallback,
    Unsubscribe,
)

logger = logging.getLogger(__name__)

DEFAULT_APP_NAME = "[DEFAULT]"


def get_firebase_app(store_config: Dict[str, Any], name: str = DEFAULT_APP_NAME):
    """Return the named Firebase app, initializing it on first use.

    A service-account config is used as the credential; a web-style config
    only contributes its projectId and relies on application default
    credentials.
    """
    try:
        return firebase_admin.get_app(name)
    except ValueError:
        pass

    options = {}
    project_id = store_config.get("projectId") or store_config.get("project_id")
    if project_id:
        options["projectId"] = project_id

    cred = None
    if store_config.get("type") == "service_account":
        cred = credentials.Certificate(store_config)

    logger.info("Initializing Firebase app '%s' (project=%s)", name, project_id or "default")
    return firebase_admin.initialize_app(cred, options=options, name=name)


class FirestoreDocumentStore(DocumentStore):
    """Documents live in Firestore; watch uses document.on_snapshot."""

    def __init__(self, client: Any):
        self.client = client

    @classmethod
    def from_config(cls, store_config: Dict[str, Any]) -> "FirestoreDocumentStore":
        app = get_firebase_app(store_config)
        return cls(firestore.client(app))

    def get(self, path: str) -> Optional[Document]:
        snap = self.client.document(path).get()
        return snap.to_dict() if snap.exists else None

    def set(self, path: str, data: Document) -> None:
        self.client.document(path).set(data)

    def watch(self, path: str, on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> Unsubscribe:
        # Firestore invokes this on its own watch thread
        def callback(doc_snapshots, changes, read_time):
            try:
                snap = doc_snapshots[0] if doc_snapshots else None
                on_snapshot(snap.to_dict() if snap is not None and snap.exists else None)
            except Exception as e:
                logger.exception("Firestore snapshot handling failed for %s", path)
                on_error(e)

        watch = self.client.document(path).on_snapshot(callback)
        return watch.unsubscribe
