"""Video API controller."""

from __future__ import annotations

from typing import Annotated, Any

from litestar import Controller, Request, delete, get, post, put
from litestar.datastructures import UploadFile
from litestar.enums import RequestEncodingType
from litestar.params import Body
from litestar.status_codes import HTTP_200_OK, HTTP_201_CREATED
from pydantic import BaseModel, Field

from chunkvault.config import Settings
from chunkvault.db.services.video_service import (
    SavedVideo,
    delete_video,
    get_video,
    load_video_payload,
    save_video,
)
from chunkvault.lib.chunking import detect_layout, is_layout_field
from chunkvault.lib.exceptions import UploadTooLargeError, VideoNotFoundError
from chunkvault.lib.files import file_to_data_url, format_file_size
from chunkvault.lib.storage import StorageManager


class VideoIn(BaseModel):
    """Fields of the admin video form."""

    title: str
    video_url: str = Field(alias="videoUrl", min_length=1)
    description: str = ""
    category: str = ""
    day: int = 1
    duration: str = ""
    thumbnail_url: str | None = Field(default=None, alias="thumbnailUrl")
    published: bool = False

    def record_fields(self) -> dict[str, Any]:
        fields = self.model_dump(by_alias=True, exclude={"video_url"}, exclude_none=True)
        if fields.get("thumbnailUrl") is not None:
            fields["thumbnailUrl"] = fields["thumbnailUrl"].strip()
        return fields


def _saved_response(saved: SavedVideo) -> dict[str, Any]:
    return {
        "id": saved.id,
        "layout": saved.layout.value,
        "chunkCount": saved.chunk_count,
        "payloadLength": saved.payload_length,
    }


class VideoController(Controller):
    """Create, replace, read and delete videos."""

    path = "/videos"

    @post("/", status_code=HTTP_201_CREATED)
    async def create_video(self, request: Request, data: VideoIn) -> dict[str, Any]:
        storage: StorageManager = request.app.state.storage_manager
        settings: Settings = request.app.state.settings
        store = await storage.get()
        saved = await save_video(
            store,
            data.video_url,
            fields=data.record_fields(),
            chunking=settings.chunking,
        )
        return _saved_response(saved)

    @post("/upload", status_code=HTTP_201_CREATED)
    async def upload_video(
        self,
        request: Request,
        data: Annotated[UploadFile, Body(media_type=RequestEncodingType.MULTI_PART)],
    ) -> dict[str, Any]:
        """Store an uploaded file; the filename becomes the title."""
        storage: StorageManager = request.app.state.storage_manager
        settings: Settings = request.app.state.settings

        content = await data.read()
        max_size = storage.store_config().max_upload_size
        if len(content) > max_size:
            raise UploadTooLargeError(
                f"File too large: {format_file_size(len(content))} exceeds {format_file_size(max_size)}"
            )

        result = file_to_data_url(
            content,
            data.content_type or "application/octet-stream",
            filename=data.filename or "untitled",
        )
        store = await storage.get()
        saved = await save_video(
            store,
            result.data_url,
            fields={"title": result.file_name, "fileSize": result.file_size},
            chunking=settings.chunking,
        )
        return _saved_response(saved)

    @put("/{video_id:str}", status_code=HTTP_200_OK)
    async def replace_video(self, request: Request, video_id: str, data: VideoIn) -> dict[str, Any]:
        storage: StorageManager = request.app.state.storage_manager
        settings: Settings = request.app.state.settings
        store = await storage.get()

        # Replacing never creates a record under a caller-chosen id
        await get_video(store, video_id)

        saved = await save_video(
            store,
            data.video_url,
            fields=data.record_fields(),
            video_id=video_id,
            chunking=settings.chunking,
        )
        return _saved_response(saved)

    @get("/{video_id:str}")
    async def read_video(self, request: Request, video_id: str) -> dict[str, Any]:
        storage: StorageManager = request.app.state.storage_manager
        settings: Settings = request.app.state.settings
        store = await storage.get()

        record = await get_video(store, video_id)
        payload = await load_video_payload(store, video_id, record=record, chunking=settings.chunking)
        return {
            **{key: value for key, value in record.items() if not is_layout_field(key)},
            "layout": detect_layout(record).value,
            "chunkCount": record.get("chunkCount", 0),
            "videoUrl": payload,
        }

    @delete("/{video_id:str}")
    async def remove_video(self, request: Request, video_id: str) -> None:
        storage: StorageManager = request.app.state.storage_manager
        store = await storage.get()
        if not await delete_video(store, video_id):
            raise VideoNotFoundError(video_id)
