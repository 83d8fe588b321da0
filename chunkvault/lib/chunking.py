"""Split base64 payloads into record-sized fragments and join them back.

A payload is stored in one of three layouts:

* inline: the whole string in the parent record's ``videoUrl`` field
* inline chunked (legacy): ``chunk0..chunkN-1`` fields on the parent itself
* subcollection: the parent holds ``useSubcollection``/``chunkCount`` and the
  fragments live in child records ``videos/{id}/chunks/chunk{i}``

Fragments are cut purely by character offset, so a boundary can fall in
the middle of a base64 quantum. Only the join order matters.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Literal, Union

from chunkvault.lib import observability
from chunkvault.lib.exceptions import PayloadTooLargeError

logger = logging.getLogger(__name__)

MAX_CHUNK_SIZE = 900_000
MAX_CHUNKS = 50
INLINE_THRESHOLD = 500_000

VIDEO_FIELD = "videoUrl"
IMAGE_FIELD = "imageUrl"
USE_SUBCOLLECTION_FIELD = "useSubcollection"
CHUNK_COUNT_FIELD = "chunkCount"

OverflowPolicy = Literal["truncate", "error"]


class AssetLayout(enum.Enum):
    INLINE = "inline"
    INLINE_CHUNKED = "inline_chunked"
    SUBCOLLECTION = "subcollection"


@dataclass(frozen=True)
class InlineAsset:
    """Payload small enough to live in the parent record."""

    data: str

    use_subcollection = False
    layout = AssetLayout.INLINE

    @property
    def chunk_count(self) -> int:
        return 1

    @property
    def payload_length(self) -> int:
        return len(self.data)

    def record_fields(self, field_name: str = VIDEO_FIELD) -> dict[str, Any]:
        return {
            field_name: self.data,
            USE_SUBCOLLECTION_FIELD: False,
            CHUNK_COUNT_FIELD: 1,
        }


@dataclass(frozen=True)
class SubcollectionAsset:
    """Payload stored as ordered child fragments."""

    chunks: list[str] = field(default_factory=list)

    use_subcollection = True
    layout = AssetLayout.SUBCOLLECTION

    @property
    def chunk_count(self) -> int:
        return len(self.chunks)

    @property
    def payload_length(self) -> int:
        return sum(len(chunk) for chunk in self.chunks)

    def record_fields(self, field_name: str = VIDEO_FIELD) -> dict[str, Any]:
        return {
            USE_SUBCOLLECTION_FIELD: True,
            CHUNK_COUNT_FIELD: self.chunk_count,
        }


EncodedAsset = Union[InlineAsset, SubcollectionAsset]


def split_base64_into_chunks(
    data: str,
    max_chunk_size: int = MAX_CHUNK_SIZE,
    max_chunks: int = MAX_CHUNKS,
    overflow: OverflowPolicy = "truncate",
) -> list[str]:
    """Cut ``data`` into consecutive slices of at most ``max_chunk_size``.

    Anything left after ``max_chunks`` slices is dropped with a warning, or
    rejected with ``PayloadTooLargeError`` when ``overflow`` is ``"error"``.
    """
    if len(data) <= max_chunk_size:
        return [data]

    capacity = max_chunk_size * max_chunks
    if len(data) > capacity:
        if overflow == "error":
            raise PayloadTooLargeError(
                f"Payload of {len(data)} characters needs more than {max_chunks} "
                f"chunks of {max_chunk_size}"
            )
        logger.warning(
            "Payload too large, truncated after %d chunks (%d of %d characters kept)",
            max_chunks,
            capacity,
            len(data),
        )
        observability.warning(
            "Payload truncated",
            max_chunks=max_chunks,
            kept=capacity,
            length=len(data),
        )

    return [
        data[offset : offset + max_chunk_size]
        for offset in range(0, min(len(data), capacity), max_chunk_size)
    ]


def create_chunked_video_data(
    data: str,
    max_chunk_size: int = MAX_CHUNK_SIZE,
    max_chunks: int = MAX_CHUNKS,
    inline_threshold: int = INLINE_THRESHOLD,
    overflow: OverflowPolicy = "truncate",
) -> EncodedAsset:
    """Decide whether ``data`` is stored inline or as a subcollection."""
    chunks = split_base64_into_chunks(data, max_chunk_size, max_chunks, overflow)

    if len(chunks) == 1 and len(chunks[0]) < inline_threshold:
        return InlineAsset(chunks[0])

    return SubcollectionAsset(chunks)


def reconstruct_base64_from_chunks(chunks: list[str] | None) -> str:
    """Join fragments that are already ordered by index."""
    if not chunks:
        return ""
    if len(chunks) == 1:
        return chunks[0]
    return "".join(chunks)


def _inline_chunk_scheme(record: dict[str, Any], field_name: str) -> tuple[int, str]:
    """Return ``(count, key_prefix)`` of the legacy inline chunk fields."""
    prefixed_count = record.get(f"{field_name}ChunkCount")
    if isinstance(prefixed_count, int) and prefixed_count > 0:
        return prefixed_count, f"{field_name}Chunk"

    count = record.get(CHUNK_COUNT_FIELD)
    if isinstance(count, int) and count > 0:
        return count, "chunk"

    return 0, ""


def _inline_chunks(record: dict[str, Any], field_name: str) -> list[str]:
    count, prefix = _inline_chunk_scheme(record, field_name)
    chunks = []
    for i in range(count):
        value = record.get(f"{prefix}{i}")
        if value:
            chunks.append(value)
    return chunks


def extract_chunks_from_video_data(
    record: dict[str, Any] | None,
    field_name: str = VIDEO_FIELD,
) -> list[str]:
    """Read a payload stored with one of the legacy inline layouts.

    Inline chunk fields win over the single field; missing chunk fields are
    skipped. Returns an empty list when the record holds no payload.
    """
    if not record:
        return []

    chunks = _inline_chunks(record, field_name)
    if chunks:
        return chunks

    for name in (field_name, VIDEO_FIELD, IMAGE_FIELD):
        value = record.get(name)
        if value and isinstance(value, str):
            return [value]

    return []


def detect_layout(record: dict[str, Any] | None, field_name: str = VIDEO_FIELD) -> AssetLayout:
    """Classify how a parent record stores its payload."""
    if not record:
        return AssetLayout.INLINE

    if record.get(USE_SUBCOLLECTION_FIELD):
        return AssetLayout.SUBCOLLECTION

    if _inline_chunks(record, field_name):
        return AssetLayout.INLINE_CHUNKED

    return AssetLayout.INLINE


def is_layout_field(key: str, field_name: str = VIDEO_FIELD) -> bool:
    """True for parent fields that describe where the payload lives."""
    return (
        key in (field_name, USE_SUBCOLLECTION_FIELD, CHUNK_COUNT_FIELD, f"{field_name}ChunkCount")
        or re.fullmatch(rf"(?:{re.escape(field_name)}Chunk|chunk)\d+", key) is not None
    )
