"""Storage manager: registry of named document stores."""

from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING

from chunkvault.lib.storage.memory import MemoryDocumentStore

if TYPE_CHECKING:
    from chunkvault.config import StorageConfig, StoreConfig
    from chunkvault.lib.storage.base import DocumentStore

logger = logging.getLogger(__name__)


class StorageManager:
    """Registry that lazily creates and caches document stores by name."""

    def __init__(self, config: StorageConfig) -> None:
        self._config = config
        self._backends: dict[str, DocumentStore] = {}

    @property
    def default_store(self) -> str:
        return self._config.default

    @property
    def store_names(self) -> list[str]:
        return list(self._config.stores.keys())

    def store_config(self, name: str | None = None) -> StoreConfig:
        name = name or self._config.default
        store_cfg = self._config.stores.get(name)
        if store_cfg is None:
            raise KeyError(f"Unknown storage store: {name!r}")
        return store_cfg

    async def get(self, name: str | None = None) -> DocumentStore:
        """Return the store for *name*, creating it on first access."""
        name = name or self._config.default
        if name not in self._backends:
            self._backends[name] = create_document_store(self.store_config(name), store_name=name)
            logger.debug("Created %s document store %r", self._config.stores[name].backend, name)
        return self._backends[name]

    async def close(self) -> None:
        """Release resources held by stores."""
        for backend in self._backends.values():
            close = getattr(backend, "close", None)
            if close is not None:
                await close()
        self._backends.clear()


def create_document_store(config: StoreConfig, store_name: str = "default") -> DocumentStore:
    """Instantiate a document store from configuration."""
    backend_type = config.backend

    if backend_type == "memory":
        return MemoryDocumentStore(store_name=store_name)

    if backend_type == "local":
        from pathlib import Path

        from chunkvault.lib.storage.local import LocalDocumentStore

        return LocalDocumentStore(base_path=Path(config.local_path), store_name=store_name)

    if backend_type == "firestore":
        from chunkvault.lib.storage.firestore import FirestoreDocumentStore

        return FirestoreDocumentStore(config.firestore)

    # Dynamic import: "module:ClassName"
    if ":" in backend_type:
        parts = backend_type.split(":")
        if len(parts) != 2:
            raise ValueError(
                f"Invalid backend path '{backend_type}': must contain exactly one colon"
            )
        module_path, class_name = parts
        module = importlib.import_module(module_path)
        cls = getattr(module, class_name)
        return cls(config)

    raise ValueError(
        f"Unknown storage backend '{backend_type}'. "
        "Use 'memory', 'local', 'firestore', or 'module:ClassName'."
    )
