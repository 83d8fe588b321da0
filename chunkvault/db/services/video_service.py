"""Video records: store, read back and delete payloads in any layout."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from chunkvault.config import ChunkingConfig, get_settings
from chunkvault.db.paths import video_path
from chunkvault.db.services.chunk_service import (
    delete_chunks_from_subcollection,
    get_chunks_from_subcollection,
    save_chunks_to_subcollection,
)
from chunkvault.lib import observability
from chunkvault.lib.chunking import (
    VIDEO_FIELD,
    AssetLayout,
    InlineAsset,
    create_chunked_video_data,
    detect_layout,
    extract_chunks_from_video_data,
    is_layout_field,
    reconstruct_base64_from_chunks,
)
from chunkvault.lib.exceptions import IncompleteAssetError, VideoNotFoundError
from chunkvault.lib.files import is_base64_data_url
from chunkvault.lib.hooks import (
    AFTER_VIDEO_DELETE,
    AFTER_VIDEO_SAVE,
    BEFORE_VIDEO_DELETE,
    BEFORE_VIDEO_SAVE,
    VIDEO_PAYLOAD,
    VIDEO_RECORD,
    hooks,
)
from chunkvault.lib.storage.base import DocumentStore

logger = logging.getLogger(__name__)

PAYLOAD_LENGTH_FIELD = "payloadLength"

# Fields managed here; callers cannot override them through ``fields``
_RESERVED_FIELDS = {"id", "createdAt", "updatedAt", PAYLOAD_LENGTH_FIELD}


@dataclass
class SavedVideo:
    id: str
    layout: AssetLayout
    chunk_count: int
    payload_length: int
    created: bool


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _is_media_data_url(value: str) -> bool:
    return is_base64_data_url(value, kind="video") or is_base64_data_url(value, kind="image")


def _chunking_config(chunking: ChunkingConfig | None) -> ChunkingConfig:
    return chunking or get_settings().chunking


async def save_video(
    store: DocumentStore,
    video_url: str,
    fields: dict[str, Any] | None = None,
    video_id: str | None = None,
    chunking: ChunkingConfig | None = None,
    created_by: str | None = None,
) -> SavedVideo:
    """Create or replace a video record and its payload.

    Base64 ``data:video/`` and ``data:image/`` URLs are split into fragments
    when they are too large to live in the parent record; any other value
    (a remote URL) is stored inline unchanged. When ``video_id`` is given any
    fragments under it are deleted before anything new is written, and the
    previous layout fields are dropped so the record is in exactly one layout.
    """
    config = _chunking_config(chunking)
    video_url = await hooks.apply_filters(VIDEO_PAYLOAD, video_url.strip(), video_id=video_id)

    if _is_media_data_url(video_url):
        encoded = create_chunked_video_data(
            video_url,
            max_chunk_size=config.max_chunk_size,
            max_chunks=config.max_chunks,
            inline_threshold=config.inline_threshold,
            overflow=config.overflow,
        )
    else:
        encoded = InlineAsset(video_url)

    video_id_given = video_id is not None
    created = not video_id_given
    record: dict[str, Any] = {}
    if created:
        video_id = uuid4().hex
        record["createdAt"] = _now()
    else:
        existing = await store.get_record(video_path(video_id))
        if existing is None:
            created = True
            record["createdAt"] = _now()
        else:
            record.update(
                (key, value) for key, value in existing.items() if not is_layout_field(key)
            )

    record.update(
        (key, value)
        for key, value in (fields or {}).items()
        if key not in _RESERVED_FIELDS and not is_layout_field(key)
    )
    record.update(encoded.record_fields(VIDEO_FIELD))
    record[PAYLOAD_LENGTH_FIELD] = encoded.payload_length
    record["updatedAt"] = _now()
    if created_by:
        record["createdBy"] = created_by

    record = await hooks.apply_filters(VIDEO_RECORD, record, video_id)
    await hooks.do_action(BEFORE_VIDEO_SAVE, video_id, record)

    with observability.span("video.save", video_id=video_id, layout=encoded.layout.value):
        if video_id_given:
            await delete_chunks_from_subcollection(store, video_id)
        await store.put_record(video_path(video_id), record)
        if encoded.use_subcollection:
            await save_chunks_to_subcollection(store, video_id, encoded.chunks)

    saved = SavedVideo(
        id=video_id,
        layout=encoded.layout,
        chunk_count=encoded.chunk_count,
        payload_length=encoded.payload_length,
        created=created,
    )
    logger.info(
        "%s video %s (%s, %d chunks, %d characters)",
        "Created" if created else "Updated",
        video_id,
        saved.layout.value,
        saved.chunk_count,
        saved.payload_length,
    )

    await hooks.do_action(AFTER_VIDEO_SAVE, saved)
    return saved


async def get_video(store: DocumentStore, video_id: str) -> dict[str, Any]:
    """Return a video's parent record including its ``id``."""
    record = await store.get_record(video_path(video_id))
    if record is None:
        raise VideoNotFoundError(video_id)
    return {**record, "id": video_id}


async def load_video_payload(
    store: DocumentStore,
    video_id: str,
    record: dict[str, Any] | None = None,
    chunking: ChunkingConfig | None = None,
) -> str:
    """Reassemble a video's payload from whichever layout it was stored in.

    Records written by ``save_video`` carry ``payloadLength``; a reassembled
    payload of a different length is logged, and rejected with
    ``IncompleteAssetError`` when ``verify_length`` is enabled.
    """
    if record is None:
        record = await get_video(store, video_id)

    layout = detect_layout(record)
    with observability.span("video.load", video_id=video_id, layout=layout.value):
        if layout is AssetLayout.SUBCOLLECTION:
            chunks = await get_chunks_from_subcollection(store, video_id)
        else:
            chunks = extract_chunks_from_video_data(record)
        payload = reconstruct_base64_from_chunks(chunks)

    expected = record.get(PAYLOAD_LENGTH_FIELD)
    if isinstance(expected, int) and expected != len(payload):
        logger.warning(
            "Video %s (%s) reassembled to %d characters, expected %d",
            video_id,
            layout.value,
            len(payload),
            expected,
        )
        observability.warning(
            "Incomplete video payload",
            video_id=video_id,
            expected=expected,
            actual=len(payload),
        )
        if _chunking_config(chunking).verify_length:
            raise IncompleteAssetError(video_id, expected, len(payload))

    return payload


async def delete_video(store: DocumentStore, video_id: str) -> bool:
    """Delete a video's fragments and then its parent record.

    Returns False when there was no parent record.
    """
    record = await store.get_record(video_path(video_id))
    if record is None:
        # Fragments can outlive a parent whose write failed
        await delete_chunks_from_subcollection(store, video_id)
        return False

    await hooks.do_action(BEFORE_VIDEO_DELETE, video_id, record)

    with observability.span("video.delete", video_id=video_id):
        await delete_chunks_from_subcollection(store, video_id)
        await store.delete_record(video_path(video_id))

    logger.info("Deleted video %s", video_id)
    await hooks.do_action(AFTER_VIDEO_DELETE, video_id=video_id)
    return True
