import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file early so env vars are available for YAML interpolation
_env_file = Path(__file__).parent.parent / ".env"
load_dotenv(_env_file)

# Pattern to match $VAR_NAME environment variable references
ENV_VAR_PATTERN = re.compile(r"\$([A-Z_][A-Z0-9_]*)")


def interpolate_env_vars(value):
    """Recursively replace $VAR_NAME with os.environ values."""
    if isinstance(value, str):

        def replace(match):
            var = match.group(1)
            val = os.environ.get(var)
            if val is None:
                raise ValueError(f"Environment variable ${var} not set")
            return val

        return ENV_VAR_PATTERN.sub(replace, value)
    elif isinstance(value, dict):
        return {k: interpolate_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [interpolate_env_vars(item) for item in value]
    return value


def get_config_path() -> Path:
    """Return the app.yaml path, honouring CHUNKVAULT_CONFIG."""
    override = os.environ.get("CHUNKVAULT_CONFIG")
    if override:
        return Path(override)
    return Path.cwd() / "app.yaml"


def load_app_config() -> dict:
    """Load and parse app.yaml with environment variable interpolation."""
    config_path = get_config_path()

    if not config_path.exists():
        raise FileNotFoundError(f"app.yaml not found at {config_path}")

    with open(config_path, "r") as f:
        config = yaml.safe_load(f) or {}

    return interpolate_env_vars(config)


class ChunkingConfig(BaseModel):
    """Limits used when splitting payloads into fragments.

    The defaults keep every fragment record under the document store's
    ~1,000,000 character per-record ceiling with room for metadata.
    """

    max_chunk_size: int = 900_000
    max_chunks: int = 50
    inline_threshold: int = 500_000
    overflow: Literal["truncate", "error"] = "truncate"
    verify_length: bool = False


class FirestoreConfig(BaseModel):
    """Firestore client configuration."""

    project: str | None = None
    database: str | None = None
    credentials_file: str | None = None


class StoreConfig(BaseModel):
    """A single named document store."""

    backend: str = "local"
    local_path: str = "./data/records"
    max_upload_size: int = 50 * 1024 * 1024
    firestore: FirestoreConfig = FirestoreConfig()


class StorageConfig(BaseModel):
    """Registry of named document stores."""

    default: str = "default"
    stores: dict[str, StoreConfig] = {"default": StoreConfig()}


class LogfireConfig(BaseModel):
    """Pydantic Logfire observability configuration."""

    enabled: bool = False
    service_name: str = "chunkvault"
    environment: str | None = None
    sample_rate: float = 1.0
    console: bool = False


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CHUNKVAULT_",
        extra="ignore",
    )

    # Application
    debug: bool = False

    # Loaded from app.yaml
    chunking: ChunkingConfig = ChunkingConfig()
    storage: StorageConfig = StorageConfig()
    logfire: LogfireConfig = LogfireConfig()


@lru_cache
def get_settings() -> Settings:
    """Load settings from .env and app.yaml."""
    base_settings = Settings()

    try:
        app_config = load_app_config()
    except FileNotFoundError:
        return base_settings

    updates = {}

    if "chunking" in app_config:
        updates["chunking"] = ChunkingConfig(**app_config["chunking"])

    if "storage" in app_config:
        updates["storage"] = StorageConfig(**app_config["storage"])

    if "logfire" in app_config:
        updates["logfire"] = LogfireConfig(**app_config["logfire"])

    if "debug" in app_config:
        updates["debug"] = bool(app_config["debug"])

    if updates:
        return base_settings.model_copy(update=updates)

    return base_settings
