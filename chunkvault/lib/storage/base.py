"""Document store protocol and common types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass
class StoredRecord:
    """A record read back from a collection listing."""

    id: str
    path: str
    fields: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class DocumentStore(Protocol):
    """Interface for the hosted document stores assets are written to.

    Paths are slash separated and alternate collection and document ids,
    e.g. ``videos/{videoId}/chunks/chunk0``.
    """

    async def put_record(self, path: str, fields: dict[str, Any]) -> None:
        """Create or replace the record at ``path``."""
        ...

    async def get_record(self, path: str) -> dict[str, Any] | None:
        """Return the record's fields, or None when it does not exist."""
        ...

    async def list_records(
        self, collection_path: str, order_by: str | None = None
    ) -> list[StoredRecord]:
        """Return the direct children of a collection, ascending by ``order_by``."""
        ...

    async def delete_record(self, path: str) -> None:
        """Remove a record. Missing records are ignored."""
        ...


def split_path(path: str) -> list[str]:
    """Split a record path into its non-empty segments."""
    return [segment for segment in path.strip("/").split("/") if segment]


def sort_records(records: list[StoredRecord], order_by: str | None) -> list[StoredRecord]:
    """Order records by a field the way the hosted stores do.

    Records lacking the field are left out, matching an ``orderBy`` query.
    """
    if order_by is None:
        return records
    present = [record for record in records if order_by in record.fields]
    return sorted(present, key=lambda record: record.fields[order_by])
