"""Cloud Firestore document store (requires ``pip install chunkvault[firestore]``)."""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any

try:
    from google.cloud import firestore
    from google.oauth2 import service_account
except ImportError as exc:
    raise ImportError(
        "Firestore storage backend requires google-cloud-firestore. "
        "Install it with: pip install chunkvault[firestore]"
    ) from exc

from chunkvault.lib.storage.base import StoredRecord, split_path

if TYPE_CHECKING:
    from chunkvault.config import FirestoreConfig


class FirestoreDocumentStore:
    """Read and write records through ``firestore.AsyncClient``.

    The client honours ``FIRESTORE_EMULATOR_HOST`` on its own, so pointing
    the store at the emulator needs no configuration here.
    """

    def __init__(self, config: FirestoreConfig, client: Any = None) -> None:
        self._config = config
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = firestore.AsyncClient(**self._client_kwargs())
        return self._client

    def _client_kwargs(self) -> dict:
        kwargs: dict = {}
        if self._config.project:
            kwargs["project"] = self._config.project
        if self._config.database:
            kwargs["database"] = self._config.database
        if self._config.credentials_file:
            kwargs["credentials"] = service_account.Credentials.from_service_account_file(
                self._config.credentials_file
            )
        return kwargs

    async def put_record(self, path: str, fields: dict[str, Any]) -> None:
        await self.client.document(*split_path(path)).set(fields)

    async def get_record(self, path: str) -> dict[str, Any] | None:
        snapshot = await self.client.document(*split_path(path)).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict()

    async def list_records(
        self, collection_path: str, order_by: str | None = None
    ) -> list[StoredRecord]:
        segments = split_path(collection_path)
        query = self.client.collection(*segments)
        if order_by is not None:
            query = query.order_by(order_by, direction=firestore.Query.ASCENDING)

        records = []
        async for snapshot in query.stream():
            records.append(
                StoredRecord(
                    id=snapshot.id,
                    path="/".join([*segments, snapshot.id]),
                    fields=snapshot.to_dict() or {},
                )
            )
        return records

    async def delete_record(self, path: str) -> None:
        await self.client.document(*split_path(path)).delete()

    async def close(self) -> None:
        """Close the underlying gRPC channel if a client was created."""
        if self._client is None:
            return
        result = self._client.close()
        if inspect.isawaitable(result):
            await result
        self._client = None
