"""Tests for storing and reading videos across layouts."""

import logging
from unittest.mock import MagicMock, patch

import pytest

from chunkvault.config import ChunkingConfig
from chunkvault.db.services.chunk_service import (
    get_chunks_from_subcollection,
    save_chunks_to_subcollection,
)
from chunkvault.db.services.video_service import (
    delete_video,
    get_video,
    load_video_payload,
    save_video,
)
from chunkvault.lib import observability
from chunkvault.lib.chunking import AssetLayout, extract_chunks_from_video_data
from chunkvault.lib.exceptions import IncompleteAssetError, PayloadTooLargeError, VideoNotFoundError
from chunkvault.lib.files import file_to_data_url
from chunkvault.lib.hooks import (
    AFTER_VIDEO_DELETE,
    AFTER_VIDEO_SAVE,
    BEFORE_VIDEO_SAVE,
    VIDEO_RECORD,
    hooks,
)

DEFAULTS = ChunkingConfig()


class TestSaveVideo:
    @pytest.mark.asyncio
    async def test_small_video_is_stored_inline(self, store, video_data_url):
        payload = video_data_url(10_000)

        saved = await save_video(store, payload, fields={"title": "Plank"}, chunking=DEFAULTS)

        record = await store.get_record(f"videos/{saved.id}")
        assert saved.created is True
        assert saved.layout is AssetLayout.INLINE
        assert record["videoUrl"] == payload
        assert record["useSubcollection"] is False
        assert record["chunkCount"] == 1
        assert record["payloadLength"] == len(payload)
        assert record["title"] == "Plank"
        assert "createdAt" in record and "updatedAt" in record
        assert await get_chunks_from_subcollection(store, saved.id) == []

    @pytest.mark.asyncio
    async def test_two_megabyte_video_uses_four_chunks(self, store, video_data_url):
        payload = video_data_url(2_796_202)

        saved = await save_video(store, payload, chunking=DEFAULTS)

        record = await store.get_record(f"videos/{saved.id}")
        assert saved.layout is AssetLayout.SUBCOLLECTION
        assert record["useSubcollection"] is True
        assert record["chunkCount"] == 4
        assert "videoUrl" not in record
        assert len(await store.list_records(f"videos/{saved.id}/chunks")) == 4
        assert await load_video_payload(store, saved.id, chunking=DEFAULTS) == payload

    @pytest.mark.asyncio
    async def test_plain_url_is_stored_inline_unchanged(self, store):
        saved = await save_video(store, "  https://cdn.example.com/squat.mp4 ", chunking=DEFAULTS)

        record = await store.get_record(f"videos/{saved.id}")
        assert record["videoUrl"] == "https://cdn.example.com/squat.mp4"
        assert record["useSubcollection"] is False

    @pytest.mark.asyncio
    async def test_small_image_data_url_is_stored_inline(self, store):
        payload = "data:image/png;base64," + "A" * 100

        saved = await save_video(store, payload, chunking=DEFAULTS)

        assert saved.layout is AssetLayout.INLINE
        assert (await store.get_record(f"videos/{saved.id}"))["videoUrl"] == payload

    @pytest.mark.asyncio
    async def test_large_image_data_url_is_chunked(self, store):
        payload = file_to_data_url(b"\0" * (2 * 1024 * 1024), "image/png").data_url

        saved = await save_video(store, payload, chunking=DEFAULTS)

        record = await store.get_record(f"videos/{saved.id}")
        assert saved.layout is AssetLayout.SUBCOLLECTION
        assert "videoUrl" not in record
        assert record["chunkCount"] == 4
        assert await load_video_payload(store, saved.id, chunking=DEFAULTS) == payload

    @pytest.mark.asyncio
    async def test_created_by_is_recorded(self, store):
        saved = await save_video(store, "https://x", created_by="user-1", chunking=DEFAULTS)
        assert (await store.get_record(f"videos/{saved.id}"))["createdBy"] == "user-1"

    @pytest.mark.asyncio
    async def test_callers_cannot_override_layout_fields(self, store):
        saved = await save_video(
            store,
            "https://x",
            fields={"useSubcollection": True, "chunkCount": 9, "payloadLength": 1},
            chunking=DEFAULTS,
        )

        record = await store.get_record(f"videos/{saved.id}")
        assert record["useSubcollection"] is False
        assert record["chunkCount"] == 1
        assert record["payloadLength"] == len("https://x")

    @pytest.mark.asyncio
    async def test_truncation_policy_error(self, store, video_data_url):
        config = ChunkingConfig(max_chunk_size=10, max_chunks=2, inline_threshold=5, overflow="error")

        with pytest.raises(PayloadTooLargeError):
            await save_video(store, video_data_url(40), chunking=config)

        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_truncated_payload_length_is_recorded(self, store, video_data_url):
        config = ChunkingConfig(max_chunk_size=10, max_chunks=2, inline_threshold=5)

        saved = await save_video(store, video_data_url(40), chunking=config)

        assert saved.payload_length == 20
        assert (await store.get_record(f"videos/{saved.id}"))["payloadLength"] == 20


class TestReplaceVideo:
    @pytest.mark.asyncio
    async def test_replace_chunked_video_with_small_payload(self, store, video_data_url):
        saved = await save_video(store, video_data_url(2_796_202), fields={"title": "Long"}, chunking=DEFAULTS)
        small = video_data_url(13_000)

        replaced = await save_video(store, small, video_id=saved.id, chunking=DEFAULTS)

        record = await store.get_record(f"videos/{saved.id}")
        assert replaced.id == saved.id
        assert replaced.created is False
        assert replaced.layout is AssetLayout.INLINE
        assert await get_chunks_from_subcollection(store, saved.id) == []
        assert extract_chunks_from_video_data(record) == [small]
        assert record["title"] == "Long"
        assert record["useSubcollection"] is False

    @pytest.mark.asyncio
    async def test_replace_inline_with_chunked_drops_inline_field(self, store, small_chunking, video_data_url):
        saved = await save_video(store, "https://old", chunking=small_chunking)

        await save_video(store, video_data_url(35), video_id=saved.id, chunking=small_chunking)

        record = await store.get_record(f"videos/{saved.id}")
        assert "videoUrl" not in record
        assert record["useSubcollection"] is True
        assert record["chunkCount"] == 4

    @pytest.mark.asyncio
    async def test_replace_removes_legacy_inline_chunk_fields(self, store):
        await store.put_record(
            "videos/legacy",
            {"title": "Old", "videoUrlChunkCount": 2, "videoUrlChunk0": "ab", "videoUrlChunk1": "cd"},
        )

        await save_video(store, "https://new", video_id="legacy", chunking=DEFAULTS)

        record = await store.get_record("videos/legacy")
        assert record["title"] == "Old"
        assert not any(key.startswith("videoUrlChunk") for key in record)
        assert await load_video_payload(store, "legacy", chunking=DEFAULTS) == "https://new"

    @pytest.mark.asyncio
    async def test_shorter_chunk_set_leaves_no_stale_chunks(self, store, small_chunking, video_data_url):
        saved = await save_video(store, video_data_url(45), chunking=small_chunking)
        shorter = video_data_url(25)

        await save_video(store, shorter, video_id=saved.id, chunking=small_chunking)

        assert len(await store.list_records(f"videos/{saved.id}/chunks")) == 3
        assert await load_video_payload(store, saved.id, chunking=small_chunking) == shorter

    @pytest.mark.asyncio
    async def test_unknown_id_is_created(self, store):
        saved = await save_video(store, "https://x", video_id="chosen", chunking=DEFAULTS)

        assert saved.created is True
        assert "createdAt" in await store.get_record("videos/chosen")

    @pytest.mark.asyncio
    async def test_unknown_id_clears_orphan_chunks(self, store, small_chunking, video_data_url):
        await save_chunks_to_subcollection(store, "v1", ["AAAA", "OLD1", "OLD2", "OLD3"])
        payload = video_data_url(30)

        saved = await save_video(store, payload, video_id="v1", chunking=small_chunking)

        assert saved.created is True
        assert len(await store.list_records("videos/v1/chunks")) == 3
        assert await load_video_payload(store, "v1", chunking=small_chunking) == payload


class TestLoadVideoPayload:
    @pytest.mark.asyncio
    async def test_missing_video(self, store):
        with pytest.raises(VideoNotFoundError):
            await load_video_payload(store, "nope", chunking=DEFAULTS)

    @pytest.mark.asyncio
    async def test_legacy_single_field(self, store):
        await store.put_record("videos/old", {"videoUrl": "data:video/mp4;base64,AAAA"})
        assert await load_video_payload(store, "old", chunking=DEFAULTS) == "data:video/mp4;base64,AAAA"

    @pytest.mark.asyncio
    async def test_legacy_inline_chunks(self, store):
        await store.put_record("videos/old", {"chunkCount": 3, "chunk0": "a", "chunk1": "b", "chunk2": "c"})
        assert await load_video_payload(store, "old", chunking=DEFAULTS) == "abc"

    @pytest.mark.asyncio
    async def test_record_without_payload(self, store):
        await store.put_record("videos/empty", {"title": "nothing"})
        assert await load_video_payload(store, "empty", chunking=DEFAULTS) == ""

    @pytest.mark.asyncio
    async def test_subcollection_ignores_inline_fields(self, store):
        await store.put_record("videos/v", {"useSubcollection": True, "chunkCount": 2, "videoUrl": "stale"})
        await save_chunks_to_subcollection(store, "v", ["fr", "esh"])
        assert await load_video_payload(store, "v", chunking=DEFAULTS) == "fresh"

    @pytest.mark.asyncio
    async def test_uses_given_record(self, store):
        record = {"videoUrl": "inline"}
        assert await load_video_payload(store, "unsaved", record=record, chunking=DEFAULTS) == "inline"

    @pytest.mark.asyncio
    async def test_load_span_carries_layout(self, store, small_chunking, video_data_url):
        saved = await save_video(store, video_data_url(35), chunking=small_chunking)

        with patch.object(observability, "_logfire", MagicMock()) as mock_lf, \
             patch.object(observability, "_configured", True):
            await load_video_payload(store, saved.id, chunking=small_chunking)

        mock_lf.span.assert_any_call("video.load", video_id=saved.id, layout="subcollection")

    @pytest.mark.asyncio
    async def test_short_read_is_logged(self, store, small_chunking, video_data_url, caplog):
        saved = await save_video(store, video_data_url(35), chunking=small_chunking)
        await store.delete_record(f"videos/{saved.id}/chunks/chunk2")

        with caplog.at_level(logging.WARNING, logger="chunkvault.db.services.video_service"):
            payload = await load_video_payload(store, saved.id, chunking=small_chunking)

        assert len(payload) == 25
        assert "expected 35" in caplog.text

    @pytest.mark.asyncio
    async def test_short_read_rejected_with_verify_length(self, store, video_data_url):
        config = ChunkingConfig(max_chunk_size=10, max_chunks=5, inline_threshold=6, verify_length=True)
        saved = await save_video(store, video_data_url(35), chunking=config)
        await store.delete_record(f"videos/{saved.id}/chunks/chunk0")

        with pytest.raises(IncompleteAssetError) as exc_info:
            await load_video_payload(store, saved.id, chunking=config)

        assert exc_info.value.expected == 35
        assert exc_info.value.actual == 25

    @pytest.mark.asyncio
    async def test_legacy_record_without_length_is_not_verified(self, store):
        config = ChunkingConfig(verify_length=True)
        await store.put_record("videos/old", {"videoUrl": "abc"})
        assert await load_video_payload(store, "old", chunking=config) == "abc"


class TestGetVideo:
    @pytest.mark.asyncio
    async def test_includes_id(self, store):
        await store.put_record("videos/v1", {"title": "Lunges"})
        assert await get_video(store, "v1") == {"title": "Lunges", "id": "v1"}

    @pytest.mark.asyncio
    async def test_missing(self, store):
        with pytest.raises(VideoNotFoundError, match="v404"):
            await get_video(store, "v404")


class TestDeleteVideo:
    @pytest.mark.asyncio
    async def test_deletes_chunks_and_parent(self, store, small_chunking, video_data_url):
        saved = await save_video(store, video_data_url(35), chunking=small_chunking)

        assert await delete_video(store, saved.id) is True

        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_missing_parent_returns_false_and_cleans_orphans(self, store):
        await save_chunks_to_subcollection(store, "orphan", ["a", "b"])

        assert await delete_video(store, "orphan") is False
        assert await get_chunks_from_subcollection(store, "orphan") == []


class TestVideoHooks:
    @pytest.mark.asyncio
    async def test_save_hooks(self, store, clean_hooks):
        events = []

        def tag(record, video_id):
            record["source"] = "admin"
            return record

        hooks.add_filter(VIDEO_RECORD, tag)
        hooks.add_action(BEFORE_VIDEO_SAVE, lambda video_id, record: events.append(("before", video_id)))
        hooks.add_action(AFTER_VIDEO_SAVE, lambda saved: events.append(("after", saved.id)))

        saved = await save_video(store, "https://x", chunking=DEFAULTS)

        assert (await store.get_record(f"videos/{saved.id}"))["source"] == "admin"
        assert events == [("before", saved.id), ("after", saved.id)]

    @pytest.mark.asyncio
    async def test_delete_hook(self, store, clean_hooks):
        deleted = []
        hooks.add_action(AFTER_VIDEO_DELETE, lambda video_id: deleted.append(video_id))
        saved = await save_video(store, "https://x", chunking=DEFAULTS)

        await delete_video(store, saved.id)

        assert deleted == [saved.id]
