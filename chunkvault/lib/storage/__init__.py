"""Pluggable document stores for asset records and their fragments."""

from chunkvault.lib.storage.base import DocumentStore, StoredRecord
from chunkvault.lib.storage.local import LocalDocumentStore
from chunkvault.lib.storage.manager import StorageManager, create_document_store
from chunkvault.lib.storage.memory import MemoryDocumentStore

__all__ = [
    "DocumentStore",
    "LocalDocumentStore",
    "MemoryDocumentStore",
    "StorageManager",
    "StoredRecord",
    "create_document_store",
]
