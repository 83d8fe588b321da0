"""Record paths (schema-in-code).

Document stores create collections on first write, so these helpers are
the single source of truth for where parents and fragments live.
"""

VIDEOS_COLLECTION = "videos"
CHUNKS_COLLECTION = "chunks"


def video_path(video_id: str) -> str:
    return f"{VIDEOS_COLLECTION}/{video_id}"


def chunks_path(video_id: str) -> str:
    return f"{VIDEOS_COLLECTION}/{video_id}/{CHUNKS_COLLECTION}"


def chunk_path(video_id: str, index: int) -> str:
    return f"{chunks_path(video_id)}/chunk{index}"
