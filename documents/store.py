"""Document store seam.

Collections used by the app: `programs`, `paymentMethods`, `coupons`,
`registrations`. Writes are single-document upserts with merge semantics.
"""
from __future__ import annotations

import copy
import logging
import threading
import uuid
from typing import Any, Dict, List, Optional, Tuple

from django.conf import settings


logger = logging.getLogger(__name__)


PROGRAMS = 'programs'
PAYMENT_METHODS = 'paymentMethods'
COUPONS = 'coupons'
REGISTRATIONS = 'registrations'


class StoreUnavailable(Exception):
    """A read or write against the document store failed."""


class DocumentStore:
    backend_name = ''

    def list(self, collection: str, order_by: Optional[str] = None, descending: bool = False) -> List[Tuple[str, Dict[str, Any]]]:
        raise NotImplementedError

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = True) -> None:
        raise NotImplementedError

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Replace the given top-level fields of an existing document."""
        raise NotImplementedError

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        raise NotImplementedError

    def delete(self, collection: str, doc_id: str) -> None:
        raise NotImplementedError


def _deep_merge(base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for k, v in update.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _sort_key(value: Any):
    # Missing values sort last; mixed types compare by type name first.
    if value is None:
        return (1, '', '')
    return (0, type(value).__name__, value)


class InMemoryDocumentStore(DocumentStore):
    """Process-local store with the same merge/order semantics as Firestore."""

    backend_name = 'memory'

    def __init__(self):
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def list(self, collection, order_by=None, descending=False):
        with self._lock:
            items = [(k, copy.deepcopy(v)) for k, v in (self._data.get(collection) or {}).items()]
        if order_by:
            present = [it for it in items if it[1].get(order_by) is not None]
            missing = [it for it in items if it[1].get(order_by) is None]
            present.sort(key=lambda it: _sort_key(it[1].get(order_by)), reverse=descending)
            # Firestore omits documents lacking the order field; keep them, at the end.
            items = present + missing
        return items

    def get(self, collection, doc_id):
        with self._lock:
            doc = (self._data.get(collection) or {}).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def set(self, collection, doc_id, data, merge=True):
        with self._lock:
            col = self._data.setdefault(collection, {})
            if merge and doc_id in col:
                col[doc_id] = _deep_merge(col[doc_id], copy.deepcopy(data))
            else:
                col[doc_id] = copy.deepcopy(data)

    def update(self, collection, doc_id, data):
        with self._lock:
            col = self._data.get(collection) or {}
            if doc_id not in col:
                raise StoreUnavailable(f"update {collection}/{doc_id}: no such document")
            col[doc_id].update(copy.deepcopy(data))

    def add(self, collection, data):
        doc_id = uuid.uuid4().hex[:20]
        self.set(collection, doc_id, data, merge=False)
        return doc_id

    def delete(self, collection, doc_id):
        with self._lock:
            (self._data.get(collection) or {}).pop(doc_id, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


class FirestoreDocumentStore(DocumentStore):
    backend_name = 'firestore'

    def __init__(self, client=None):
        self._client = client

    def _db(self):
        if self._client is None:
            from accounts.auth import ensure_firebase_initialized, firebase_init_error
            from firebase_admin import firestore

            if not ensure_firebase_initialized():
                raise StoreUnavailable(f"Firebase admin not initialized: {firebase_init_error()}")
            self._client = firestore.client()
        return self._client

    def list(self, collection, order_by=None, descending=False):
        from firebase_admin import firestore

        try:
            q = self._db().collection(collection)
            if order_by:
                direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
                q = q.order_by(order_by, direction=direction)
            return [(snap.id, snap.to_dict() or {}) for snap in q.stream()]
        except StoreUnavailable:
            raise
        except Exception as e:
            raise StoreUnavailable(f"list {collection} failed: {e.__class__.__name__}: {e}") from e

    def get(self, collection, doc_id):
        try:
            snap = self._db().collection(collection).document(doc_id).get()
            return (snap.to_dict() or {}) if snap.exists else None
        except StoreUnavailable:
            raise
        except Exception as e:
            raise StoreUnavailable(f"get {collection}/{doc_id} failed: {e.__class__.__name__}: {e}") from e

    def set(self, collection, doc_id, data, merge=True):
        try:
            self._db().collection(collection).document(doc_id).set(data, merge=merge)
        except StoreUnavailable:
            raise
        except Exception as e:
            raise StoreUnavailable(f"set {collection}/{doc_id} failed: {e.__class__.__name__}: {e}") from e

    def update(self, collection, doc_id, data):
        try:
            self._db().collection(collection).document(doc_id).update(data)
        except StoreUnavailable:
            raise
        except Exception as e:
            raise StoreUnavailable(f"update {collection}/{doc_id} failed: {e.__class__.__name__}: {e}") from e

    def add(self, collection, data):
        try:
            _update_time, ref = self._db().collection(collection).add(data)
            return ref.id
        except StoreUnavailable:
            raise
        except Exception as e:
            raise StoreUnavailable(f"add {collection} failed: {e.__class__.__name__}: {e}") from e

    def delete(self, collection, doc_id):
        try:
            self._db().collection(collection).document(doc_id).delete()
        except StoreUnavailable:
            raise
        except Exception as e:
            raise StoreUnavailable(f"delete {collection}/{doc_id} failed: {e.__class__.__name__}: {e}") from e


_STORE: Optional[DocumentStore] = None
_STORE_LOCK = threading.Lock()


def get_document_store() -> DocumentStore:
    global _STORE
    with _STORE_LOCK:
        if _STORE is None:
            backend = (getattr(settings, 'DOCUMENT_STORE_BACKEND', 'firestore') or 'firestore').strip().lower()
            if backend == 'memory':
                _STORE = InMemoryDocumentStore()
            else:
                _STORE = FirestoreDocumentStore()
            logger.info("document store backend: %s", backend)
        return _STORE


def set_document_store(store: Optional[DocumentStore]) -> None:
    global _STORE
    with _STORE_LOCK:
        _STORE = store
