"""Local filesystem document store."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime
from pathlib import Path
from typing import Any

from chunkvault.lib.storage.base import StoredRecord, sort_records, split_path

RECORD_SUFFIX = ".json"


class LocalDocumentStore:
    """Store each record as a JSON file mirroring its document path.

    ``videos/abc/chunks/chunk0`` lives at
    ``{base_path}/videos/abc/chunks/chunk0.json``; child collections are
    directories named after the parent document id.
    """

    def __init__(self, base_path: Path, store_name: str = "default") -> None:
        self._base_path = base_path
        self._store_name = store_name

    async def put_record(self, path: str, fields: dict[str, Any]) -> None:
        await asyncio.to_thread(self._write_record, self._record_file(path), fields)

    async def get_record(self, path: str) -> dict[str, Any] | None:
        return await asyncio.to_thread(self._read_record, self._record_file(path))

    async def list_records(
        self, collection_path: str, order_by: str | None = None
    ) -> list[StoredRecord]:
        segments = split_path(collection_path)
        directory = self._base_path.joinpath(*segments)
        records = []
        for file in await asyncio.to_thread(self._list_files, directory):
            fields = await asyncio.to_thread(self._read_record, file)
            if fields is None:
                continue
            record_id = file.name[: -len(RECORD_SUFFIX)]
            records.append(
                StoredRecord(id=record_id, path="/".join([*segments, record_id]), fields=fields)
            )
        return sort_records(records, order_by)

    async def delete_record(self, path: str) -> None:
        await asyncio.to_thread(self._unlink, self._record_file(path))

    # -- internal helpers --

    def _record_file(self, path: str) -> Path:
        segments = split_path(path)
        if not segments:
            raise ValueError(f"Invalid record path: {path!r}")
        return self._base_path.joinpath(*segments[:-1], segments[-1] + RECORD_SUFFIX)

    @staticmethod
    def _write_record(file: Path, fields: dict[str, Any]) -> None:
        file.parent.mkdir(parents=True, exist_ok=True)
        tmp = file.with_name(file.name + ".tmp")
        tmp.write_text(json.dumps(fields, default=_encode_value), encoding="utf-8")
        tmp.replace(file)

    @staticmethod
    def _read_record(file: Path) -> dict[str, Any] | None:
        try:
            return json.loads(file.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None

    @staticmethod
    def _unlink(file: Path) -> None:
        file.unlink(missing_ok=True)

    @staticmethod
    def _list_files(directory: Path) -> list[Path]:
        if not directory.is_dir():
            return []
        return sorted(p for p in directory.iterdir() if p.is_file() and p.name.endswith(RECORD_SUFFIX))


def _encode_value(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
