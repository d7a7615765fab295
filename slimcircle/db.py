"""
Document store abstraction for Firestore and an in-memory test implementation.
"""

from __future__ import annotations

import copy
import threading
import uuid
from typing import Any, Callable, Dict, Iterable, Optional, Protocol, Tuple

import firebase_admin
from firebase_admin import firestore
from google.api_core import exceptions
from google.cloud.firestore_v1.base_query import FieldFilter

# A transactional mutation receives the current document (None when absent)
# and returns the field updates to apply plus a value handed back to the caller.
Mutation = Callable[[Optional[dict]], Tuple[Optional[dict], Any]]


class DocumentNotFoundError(Exception):
    """Raised when an update targets a document that does not exist."""


class DocumentStore(Protocol):
    """Interface for collection/document access."""

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        ...

    def set(self, collection: str, doc_id: str, data: dict, merge: bool = False) -> None:
        ...

    def update(self, collection: str, doc_id: str, updates: dict) -> None:
        ...

    def delete(self, collection: str, doc_id: str) -> None:
        ...

    def add(self, collection: str, data: dict) -> str:
        ...

    def list(
        self,
        collection: str,
        *,
        where: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[tuple[str, dict]]:
        ...

    def run_transaction(self, collection: str, doc_id: str, mutation: Mutation) -> Any:
        ...


def _apply_updates(data: dict, updates: dict) -> None:
    """Applies Firestore-style updates, where dotted keys address nested fields."""
    for key, value in updates.items():
        target = data
        *parents, leaf = key.split(".")
        for part in parents:
            nested = target.get(part)
            if not isinstance(nested, dict):
                nested = {}
                target[part] = nested
            target = nested
        target[leaf] = copy.deepcopy(value)


def _sort_key(value: Any) -> tuple:
    # Missing values sort first, mirroring Firestore's null ordering.
    return (value is not None, value if value is not None else "")


class InMemoryDocumentStore:
    """Simple in-memory document store for development and tests."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, dict]] = {}
        self._lock = threading.RLock()

    def _collection(self, collection: str) -> Dict[str, dict]:
        return self.collections.setdefault(collection, {})

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        with self._lock:
            doc = self._collection(collection).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def set(self, collection: str, doc_id: str, data: dict, merge: bool = False) -> None:
        with self._lock:
            docs = self._collection(collection)
            if merge and doc_id in docs:
                docs[doc_id].update(copy.deepcopy(data))
            else:
                docs[doc_id] = copy.deepcopy(data)

    def update(self, collection: str, doc_id: str, updates: dict) -> None:
        with self._lock:
            doc = self._collection(collection).get(doc_id)
            if doc is None:
                raise DocumentNotFoundError(f"{collection}/{doc_id}")
            _apply_updates(doc, updates)

    def delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            self._collection(collection).pop(doc_id, None)

    def add(self, collection: str, data: dict) -> str:
        doc_id = uuid.uuid4().hex[:20]
        self.set(collection, doc_id, data)
        return doc_id

    def list(
        self,
        collection: str,
        *,
        where: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[tuple[str, dict]]:
        with self._lock:
            items = [
                (doc_id, copy.deepcopy(doc))
                for doc_id, doc in self._collection(collection).items()
                if all(doc.get(field) == value for field, value in (where or {}).items())
            ]
        if order_by:
            # Firestore drops documents that lack the ordering field.
            items = [item for item in items if order_by in item[1]]
            items.sort(key=lambda item: _sort_key(item[1].get(order_by)), reverse=descending)
        if limit is not None:
            items = items[:limit]
        return items

    def run_transaction(self, collection: str, doc_id: str, mutation: Mutation) -> Any:
        with self._lock:
            updates, result = mutation(self.get(collection, doc_id))
            if updates:
                self.update(collection, doc_id, updates)
            return result

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.collections.clear()

    def seed(self, collection: str, docs: Iterable[tuple[str, dict]]) -> None:
        for doc_id, data in docs:
            self.set(collection, doc_id, data)


class FirestoreDocumentStore:
    """
    Firestore-backed implementation using the firebase-admin client.
    """

    def __init__(self, project_id: Optional[str] = None):
        try:
            app = firebase_admin.get_app()
        except ValueError:
            options = {"projectId": project_id} if project_id else None
            app = firebase_admin.initialize_app(options=options)
        self.client = firestore.client(app)

    def _doc_ref(self, collection: str, doc_id: str):
        return self.client.collection(collection).document(doc_id)

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        snapshot = self._doc_ref(collection, doc_id).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict()

    def set(self, collection: str, doc_id: str, data: dict, merge: bool = False) -> None:
        self._doc_ref(collection, doc_id).set(data, merge=merge)

    def update(self, collection: str, doc_id: str, updates: dict) -> None:
        try:
            self._doc_ref(collection, doc_id).update(updates)
        except exceptions.NotFound as e:
            raise DocumentNotFoundError(f"{collection}/{doc_id}") from e

    def delete(self, collection: str, doc_id: str) -> None:
        self._doc_ref(collection, doc_id).delete()

    def add(self, collection: str, data: dict) -> str:
        _, doc_ref = self.client.collection(collection).add(data)
        return doc_ref.id

    def list(
        self,
        collection: str,
        *,
        where: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[tuple[str, dict]]:
        query = self.client.collection(collection)
        for field, value in (where or {}).items():
            query = query.where(filter=FieldFilter(field, "==", value))
        if order_by:
            direction = (
                firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            )
            query = query.order_by(order_by, direction=direction)
        if limit is not None:
            query = query.limit(limit)
        return [(snapshot.id, snapshot.to_dict()) for snapshot in query.stream()]

    def run_transaction(self, collection: str, doc_id: str, mutation: Mutation) -> Any:
        transaction = self.client.transaction()
        doc_ref = self._doc_ref(collection, doc_id)

        @firestore.transactional
        def _mutate(transaction, doc_ref):
            snapshot = doc_ref.get(transaction=transaction)
            updates, result = mutation(snapshot.to_dict() if snapshot.exists else None)
            if updates:
                transaction.update(doc_ref, updates)
            return result

        return _mutate(transaction, doc_ref)
