from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from catalog.records import Coupon, PaymentMethod, Program

from .store import (
    COUPONS,
    PAYMENT_METHODS,
    PROGRAMS,
    REGISTRATIONS,
    DocumentStore,
    StoreUnavailable,
    get_document_store,
)


logger = logging.getLogger(__name__)


def _store(store: Optional[DocumentStore]) -> DocumentStore:
    return store if store is not None else get_document_store()


def _list(store: DocumentStore, collection: str, **kwargs) -> List[Tuple[str, Dict[str, Any]]]:
    try:
        return store.list(collection, **kwargs)
    except StoreUnavailable:
        logger.exception("reading %s failed", collection)
        raise
    except Exception as e:
        logger.exception("reading %s failed", collection)
        raise StoreUnavailable(f"{e.__class__.__name__}: {e}") from e


def _write(fn, *args):
    try:
        return fn(*args)
    except StoreUnavailable:
        logger.exception("document store write failed: %s", args[:2])
        raise
    except Exception as e:
        logger.exception("document store write failed: %s", args[:2])
        raise StoreUnavailable(f"{e.__class__.__name__}: {e}") from e


# ---- reads ----

def fetch_programs(store: Optional[DocumentStore] = None) -> List[Program]:
    rows = _list(_store(store), PROGRAMS)
    programs = [Program.from_document(data, doc_id=doc_id) for doc_id, data in rows]
    programs.sort(key=lambda p: p.id)
    return programs


def fetch_payment_methods(store: Optional[DocumentStore] = None) -> List[PaymentMethod]:
    rows = _list(_store(store), PAYMENT_METHODS)
    methods = [PaymentMethod.from_document(data, doc_id=doc_id) for doc_id, data in rows]
    methods.sort(key=lambda m: m.label().lower())
    return methods


def fetch_payment_method(value: str, store: Optional[DocumentStore] = None) -> Optional[PaymentMethod]:
    value = (value or '').strip()
    if not value:
        return None
    try:
        data = _store(store).get(PAYMENT_METHODS, value)
    except Exception as e:
        logger.exception("reading payment method %s failed", value)
        raise StoreUnavailable(f"{e.__class__.__name__}: {e}") from e
    if data is None:
        return None
    return PaymentMethod.from_document(data, doc_id=value)


def fetch_coupons(store: Optional[DocumentStore] = None) -> List[Coupon]:
    rows = _list(_store(store), COUPONS)
    coupons = [Coupon.from_document(data, doc_id=doc_id) for doc_id, data in rows]
    coupons.sort(key=lambda c: c.id)
    return coupons


def fetch_registrations(store: Optional[DocumentStore] = None) -> List[Tuple[str, Dict[str, Any]]]:
    return _list(_store(store), REGISTRATIONS, order_by='registrationDate', descending=True)


# ---- writes ----

def save_program(program: Program, store: Optional[DocumentStore] = None) -> None:
    s = _store(store)
    _write(s.set, PROGRAMS, program.id, program.to_document(), True)


def save_payment_method(method: PaymentMethod, store: Optional[DocumentStore] = None) -> None:
    s = _store(store)
    _write(s.set, PAYMENT_METHODS, method.value, method.to_document(), True)


def save_coupon(coupon: Coupon, store: Optional[DocumentStore] = None) -> None:
    s = _store(store)
    _write(s.set, COUPONS, coupon.id, coupon.to_document(), True)


def create_registration(data: Dict[str, Any], store: Optional[DocumentStore] = None) -> str:
    s = _store(store)
    return _write(s.add, REGISTRATIONS, data)


def update_registration(doc_id: str, data: Dict[str, Any], store: Optional[DocumentStore] = None) -> None:
    """Replace top-level fields of an existing registration."""
    s = _store(store)
    _write(s.update, REGISTRATIONS, doc_id, data)


def delete_document(collection: str, doc_id: str, store: Optional[DocumentStore] = None) -> None:
    s = _store(store)
    _write(s.delete, collection, doc_id)


def document_exists(collection: str, doc_id: str, store: Optional[DocumentStore] = None) -> bool:
    try:
        return _store(store).get(collection, doc_id) is not None
    except Exception as e:
        logger.exception("reading %s/%s failed", collection, doc_id)
        raise StoreUnavailable(f"{e.__class__.__name__}: {e}") from e
