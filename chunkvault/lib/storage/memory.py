"""Process-local document store."""

from __future__ import annotations

import copy
from typing import Any

from chunkvault.lib.storage.base import StoredRecord, sort_records, split_path


class MemoryDocumentStore:
    """Keep records in a dict keyed by normalised path.

    Listing without ``order_by`` returns records in write order, which for
    concurrently written fragments is not necessarily index order.
    """

    def __init__(self, store_name: str = "default") -> None:
        self._store_name = store_name
        self._records: dict[str, dict[str, Any]] = {}

    async def put_record(self, path: str, fields: dict[str, Any]) -> None:
        self._records["/".join(split_path(path))] = copy.deepcopy(fields)

    async def get_record(self, path: str) -> dict[str, Any] | None:
        fields = self._records.get("/".join(split_path(path)))
        return copy.deepcopy(fields) if fields is not None else None

    async def list_records(
        self, collection_path: str, order_by: str | None = None
    ) -> list[StoredRecord]:
        parent = split_path(collection_path)
        records = []
        for key, fields in self._records.items():
            segments = key.split("/")
            if len(segments) == len(parent) + 1 and segments[:-1] == parent:
                records.append(StoredRecord(id=segments[-1], path=key, fields=copy.deepcopy(fields)))
        return sort_records(records, order_by)

    async def delete_record(self, path: str) -> None:
        self._records.pop("/".join(split_path(path)), None)

    def __len__(self) -> int:
        return len(self._records)
