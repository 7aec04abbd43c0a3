"""Batched deletion of a document collection."""

from __future__ import annotations

from core.logging import get_logger
from core.settings import MAX_PURGE_BATCH_SIZE
from services.document_store import DocumentStore

logger = get_logger(__name__)


async def purge_collection(documents: DocumentStore, collection_path: str, batch_size: int = MAX_PURGE_BATCH_SIZE) -> int:
    """Delete every document in ``collection_path`` one bounded batch at a time.

    Each page is re-queried after the previous batch commits, ordered by
    document id, until a query comes back empty. A failed batch propagates to
    the caller; re-running the purge picks up whatever is left.
    """
    size = max(1, min(int(batch_size), MAX_PURGE_BATCH_SIZE))
    deleted = 0
    while True:
        page = await documents.list_document_paths(collection_path, size)
        if not page:
            break
        await documents.delete_many(page)
        deleted += len(page)
        logger.debug("Purged %d document(s) from %s (total=%d).", len(page), collection_path, deleted)
    if deleted:
        logger.info("Purged %d document(s) from %s.", deleted, collection_path)
    return deleted


__all__ = ["purge_collection"]
