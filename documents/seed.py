from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .store import DocumentStore, get_document_store


logger = logging.getLogger(__name__)


@dataclass
class SeedResult:
    collection: str
    seeded: int = 0
    skipped: int = 0
    failed: int = 0
    error: str = ''


def seed_collection(collection: str, path: Path, id_field: str, store: Optional[DocumentStore] = None) -> SeedResult:
    """Upsert every object of a JSON array file into `collection`, keyed by `id_field`."""
    store = store if store is not None else get_document_store()
    result = SeedResult(collection=collection)
    try:
        with open(path, encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        result.error = f"Failed to read or parse {path}: {e}"
        logger.error(result.error)
        return result

    if not isinstance(data, list):
        result.error = f"{path} does not contain a JSON array."
        logger.error(result.error)
        return result

    for item in data:
        doc_id = str(item.get(id_field) or '').strip() if isinstance(item, dict) else ''
        if not doc_id:
            logger.warning("Skipping item in %s due to missing ID field (%r): %r", collection, id_field, item)
            result.skipped += 1
            continue
        try:
            store.set(collection, doc_id, dict(item), merge=False)
            result.seeded += 1
            logger.info("Seeded document %s in %s", doc_id, collection)
        except Exception as e:
            result.failed += 1
            logger.error("Error seeding document %s in %s: %s", doc_id, collection, e)
    return result
