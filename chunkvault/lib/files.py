"""Convert uploaded files to and from base64 data URLs."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass

from chunkvault.lib.exceptions import UnsupportedMediaError, UploadTooLargeError

MAX_VIDEO_SIZE_MB = 50
MAX_IMAGE_SIZE_MB = 10


@dataclass
class FileUploadResult:
    data_url: str
    file_name: str
    file_size: int
    file_type: str


def is_image_content_type(content_type: str | None) -> bool:
    return bool(content_type) and content_type.startswith("image/")


def is_video_content_type(content_type: str | None) -> bool:
    return bool(content_type) and content_type.startswith("video/")


def is_base64_data_url(value: str | None, kind: str | None = None) -> bool:
    """True for ``data:<kind>/...;base64,`` URLs, any media kind when None."""
    if not value or not value.startswith("data:"):
        return False
    header, sep, _ = value.partition(",")
    if not sep or not header.endswith(";base64"):
        return False
    return kind is None or header.startswith(f"data:{kind}/")


def format_file_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.2f} KB"
    return f"{size / 1024 / 1024:.2f} MB"


def file_to_data_url(
    data: bytes,
    content_type: str,
    filename: str = "",
    max_size_mb: float | None = None,
) -> FileUploadResult:
    """Encode an uploaded image or video as a base64 data URL.

    The limit defaults to 50 MB for videos and 10 MB for images.
    """
    if not (is_image_content_type(content_type) or is_video_content_type(content_type)):
        raise UnsupportedMediaError(f"Unsupported media type: {content_type or 'unknown'}")

    if max_size_mb is None:
        max_size_mb = MAX_VIDEO_SIZE_MB if is_video_content_type(content_type) else MAX_IMAGE_SIZE_MB

    if len(data) > max_size_mb * 1024 * 1024:
        raise UploadTooLargeError(
            f"File size exceeds {max_size_mb:g}MB limit. "
            f"Your file is {len(data) / 1024 / 1024:.2f}MB"
        )

    encoded = base64.b64encode(data).decode("ascii")
    return FileUploadResult(
        data_url=f"data:{content_type};base64,{encoded}",
        file_name=filename,
        file_size=len(data),
        file_type=content_type,
    )


def data_url_to_bytes(data_url: str) -> tuple[bytes, str]:
    """Decode a base64 data URL into ``(payload, content_type)``."""
    if not is_base64_data_url(data_url):
        raise ValueError("Not a base64 data URL")
    header, _, encoded = data_url.partition(",")
    content_type = header[len("data:") : -len(";base64")] or "application/octet-stream"
    try:
        return base64.b64decode(encoded, validate=True), content_type
    except binascii.Error as exc:
        raise ValueError(f"Malformed base64 payload: {exc}") from exc
