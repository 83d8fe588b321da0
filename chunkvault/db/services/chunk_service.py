"""Fragment subcollection: save, load and delete the chunks of one video."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from chunkvault.db.paths import chunk_path, chunks_path
from chunkvault.lib.observability import span
from chunkvault.lib.storage.base import DocumentStore

logger = logging.getLogger(__name__)

INDEX_FIELD = "index"
DATA_FIELD = "data"
CREATED_AT_FIELD = "createdAt"


async def save_chunks_to_subcollection(
    store: DocumentStore,
    video_id: str,
    chunks: list[str],
) -> None:
    """Write every fragment as ``videos/{video_id}/chunks/chunk{i}``.

    Writes are issued concurrently and are not atomic: if one fails the
    error propagates while fragments that were already written stay behind.
    Call ``delete_chunks_from_subcollection`` before retrying.
    """
    if not video_id or not chunks:
        raise ValueError("Invalid parameters for saving chunks")

    created_at = datetime.now(timezone.utc)

    with span("chunks.save", video_id=video_id, count=len(chunks)):
        await asyncio.gather(
            *(
                store.put_record(
                    chunk_path(video_id, index),
                    {INDEX_FIELD: index, DATA_FIELD: chunk, CREATED_AT_FIELD: created_at},
                )
                for index, chunk in enumerate(chunks)
            )
        )

    logger.debug("Saved %d chunks for video %s", len(chunks), video_id)


async def get_chunks_from_subcollection(store: DocumentStore, video_id: str) -> list[str]:
    """Return the fragment data of a video ordered by index.

    An empty list means the video has no fragments. Store errors propagate.
    """
    if not video_id:
        return []

    with span("chunks.load", video_id=video_id):
        records = await store.list_records(chunks_path(video_id), order_by=INDEX_FIELD)

    # Not every store honours order_by
    records.sort(key=lambda record: record.fields.get(INDEX_FIELD, 0))
    return [record.fields[DATA_FIELD] for record in records if record.fields.get(DATA_FIELD)]


async def delete_chunks_from_subcollection(store: DocumentStore, video_id: str) -> int:
    """Delete every fragment of a video, returning how many were removed.

    Failures are logged and never raised, so stale fragments cannot block
    writing a new payload.
    """
    if not video_id:
        return 0

    with span("chunks.delete", video_id=video_id):
        try:
            records = await store.list_records(chunks_path(video_id))
        except Exception:
            logger.warning("Could not list chunks of video %s", video_id, exc_info=True)
            return 0

        results = await asyncio.gather(
            *(store.delete_record(record.path) for record in records),
            return_exceptions=True,
        )

    deleted = 0
    for record, result in zip(records, results):
        if isinstance(result, BaseException):
            logger.warning(
                "Failed to delete chunk %s of video %s", record.id, video_id, exc_info=result
            )
        else:
            deleted += 1

    if records:
        logger.debug("Deleted %d of %d chunks for video %s", deleted, len(records), video_id)
    return deleted
