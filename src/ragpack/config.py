"""Settings loaded from ``RAGPACK_*`` environment variables or a .env file."""

from typing import Literal, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from ragpack.errors import ConfigurationError


class Settings(BaseSettings):
    """ragpack settings.

    Environment variables override the .env file, which overrides defaults.
    CLI flags are applied on top by passing keyword arguments.
    """

    model_config = SettingsConfigDict(
        env_prefix="RAGPACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Vector store ===
    db_path: str = "ragpack.db"
    project_id: str = ""
    batch_size: int = Field(default=1000, gt=0)

    # === Embeddings ===
    embedding_provider: Literal["sentence-transformers", "openai"] = "sentence-transformers"
    embedding_model: Optional[str] = None  # provider default when unset
    embedding_dimension: Optional[int] = Field(default=None, gt=0)
    openai_api_key: str = ""
    openai_base_url: str = ""

    # === Chunking ===
    chunk_size: int = Field(default=1500, gt=0)
    chunk_overlap: int = Field(default=200, ge=0)

    # === Retrieval ===
    top_k: int = Field(default=5, gt=0)
    min_score: float = 0.4

    # === Misc ===
    http_timeout: float = Field(default=30.0, gt=0)
    log_level: str = "INFO"


def load_settings(**overrides: object) -> Settings:
    """Build Settings, dropping ``None`` overrides, and validate them.

    Raises ConfigurationError instead of pydantic's ValidationError so callers
    only deal with ragpack errors.
    """
    values = {key: value for key, value in overrides.items() if value is not None}
    try:
        settings = Settings(**values)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc

    if not settings.project_id:
        raise ConfigurationError(
            "Missing project id: set RAGPACK_PROJECT_ID or pass --project"
        )
    if settings.chunk_overlap >= settings.chunk_size:
        raise ConfigurationError("chunk_overlap must be smaller than chunk_size")
    if settings.embedding_provider == "openai" and not settings.openai_api_key:
        raise ConfigurationError(
            "RAGPACK_OPENAI_API_KEY is required for the openai embedding provider"
        )
    return settings
