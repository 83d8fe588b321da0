"""Error types and their JSON exception handlers."""

from __future__ import annotations

import logging

from litestar import Request, Response
from litestar.exceptions import HTTPException
from litestar.status_codes import (
    HTTP_404_NOT_FOUND,
    HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    HTTP_415_UNSUPPORTED_MEDIA_TYPE,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from chunkvault.lib import observability

logger = logging.getLogger(__name__)


class ChunkVaultError(Exception):
    """Base class for errors raised while storing or reading assets."""

    status_code = HTTP_500_INTERNAL_SERVER_ERROR


class PayloadTooLargeError(ChunkVaultError):
    """The payload needs more fragments than the configured maximum."""

    status_code = HTTP_413_REQUEST_ENTITY_TOO_LARGE


class UploadTooLargeError(ChunkVaultError):
    """An uploaded file exceeds the size limit for its media type."""

    status_code = HTTP_413_REQUEST_ENTITY_TOO_LARGE


class UnsupportedMediaError(ChunkVaultError):
    """Only image/* and video/* payloads can be stored."""

    status_code = HTTP_415_UNSUPPORTED_MEDIA_TYPE


class VideoNotFoundError(ChunkVaultError):
    status_code = HTTP_404_NOT_FOUND

    def __init__(self, video_id: str) -> None:
        super().__init__(f"Video {video_id!r} not found")
        self.video_id = video_id


class IncompleteAssetError(ChunkVaultError):
    """Reassembled payload length differs from the stored ``payloadLength``."""

    def __init__(self, video_id: str, expected: int, actual: int) -> None:
        super().__init__(
            f"Video {video_id!r} reassembled to {actual} characters, expected {expected}"
        )
        self.video_id = video_id
        self.expected = expected
        self.actual = actual


def _json_error(status_code: int, detail: str) -> Response:
    return Response(
        content={"status_code": status_code, "detail": detail},
        status_code=status_code,
        media_type="application/json",
    )


def _log_failure(request: Request) -> None:
    if not observability.exception(
        "Unhandled exception on {method} {path}",
        method=request.method,
        path=request.url.path,
    ):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)


def chunkvault_exception_handler(request: Request, exc: ChunkVaultError) -> Response:
    """Map domain errors to their status codes."""
    if exc.status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        _log_failure(request)
    return _json_error(exc.status_code, str(exc))


def http_exception_handler(request: Request, exc: HTTPException) -> Response:
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _json_error(exc.status_code, detail)


def internal_server_error_handler(request: Request, exc: Exception) -> Response:
    """Handle unexpected exceptions without leaking their message."""
    _log_failure(request)
    return _json_error(HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error")


EXCEPTION_HANDLERS = {
    ChunkVaultError: chunkvault_exception_handler,
    HTTPException: http_exception_handler,
    Exception: internal_server_error_handler,
}
