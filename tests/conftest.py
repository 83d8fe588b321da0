"""Shared pytest fixtures."""

import pytest
import yaml

from chunkvault.config import ChunkingConfig, get_settings
from chunkvault.lib.hooks import hooks
from chunkvault.lib.storage import MemoryDocumentStore


@pytest.fixture
def store():
    """A fresh in-memory document store."""
    return MemoryDocumentStore()


@pytest.fixture
def small_chunking():
    """Tiny limits so chunking behaviour shows up with short strings."""
    return ChunkingConfig(max_chunk_size=10, max_chunks=5, inline_threshold=6)


@pytest.fixture
def temp_app_yaml(tmp_path, monkeypatch):
    """Write an app.yaml and point the settings loader at it."""
    config_path = tmp_path / "app.yaml"

    def _create_config(config: dict):
        with open(config_path, "w") as f:
            yaml.safe_dump(config, f)
        monkeypatch.setenv("CHUNKVAULT_CONFIG", str(config_path))
        get_settings.cache_clear()
        return config_path

    yield _create_config
    get_settings.cache_clear()


@pytest.fixture
def clean_hooks():
    """Save and restore hooks state around a test."""
    original_filters = {name: list(handlers) for name, handlers in hooks._filters.items()}
    original_actions = {name: list(handlers) for name, handlers in hooks._actions.items()}
    yield
    hooks._filters.clear()
    hooks._filters.update(original_filters)
    hooks._actions.clear()
    hooks._actions.update(original_actions)


@pytest.fixture
def video_data_url():
    """Factory for ``data:video/mp4`` URLs of an exact total length."""

    def _make(length: int) -> str:
        prefix = "data:video/mp4;base64,"
        body = ("QUJDRA==" * (length // 8 + 1))[: length - len(prefix)]
        return prefix + body

    return _make
