"""Application configuration using Pydantic Settings."""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings are validated at startup. Invalid values cause the
    application to fail fast with clear error messages. A missing OpenAI
    key is not an error: semantic search then runs on the local fallback
    embeddings.
    """

    # API Settings
    api_title: str = Field(default="Bookmark Search API", description="API title")
    api_version: str = Field(default="1.0.0", description="API version")

    # Embedding provider
    openai_api_key: str | None = Field(default=None, description="OpenAI API key")
    openai_embedding_model: str = Field(
        default="text-embedding-3-small",
        description="OpenAI model for text embeddings",
    )
    embedding_dimensions: int = Field(
        default=384,
        ge=8,
        le=3072,
        description="Length of every embedding vector (provider and fallback)",
    )
    embedding_timeout: float = Field(
        default=10.0,
        gt=0.0,
        le=120.0,
        description="Per-call timeout in seconds before falling back",
    )
    embedding_max_retries: int = Field(
        default=1,
        ge=1,
        le=5,
        description="Provider attempts per embedding call",
    )
    embedding_max_concurrency: int = Field(
        default=8,
        ge=1,
        le=256,
        description="Maximum in-flight embedding provider calls",
    )
    embedding_max_input_chars: int = Field(
        default=8000,
        ge=1,
        description="Input is truncated to this many characters before embedding",
    )
    embedding_cache_prefix_chars: int = Field(
        default=100,
        ge=1,
        description="Prefix length used as the embedding cache key",
    )
    embedding_cache_key: str = Field(
        default="prefix",
        description="Embedding cache key mode (prefix, content)",
    )

    # Storage
    bookmarks_path: Path = Field(
        default=Path("~/.bookmarks-app/bookmarks.json"),
        validate_default=True,
        description="Path to the flat JSON bookmark file",
    )

    # Lexical search
    fuzzy_threshold: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        description="Maximum normalized distance for a field to count as a match",
    )
    min_match_char_length: int = Field(
        default=2,
        ge=1,
        le=20,
        description="Minimum matched span length",
    )
    index_fingerprint: str = Field(
        default="structural",
        description="Lexical index change detection (structural, content)",
    )

    # Semantic search and results
    semantic_threshold: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Default minimum cosine similarity",
    )
    default_page_size: int = Field(
        default=20, ge=1, le=100, description="Page size when a request omits limit"
    )
    max_page_size: int = Field(default=100, ge=1, le=1000)
    suggestion_count: int = Field(
        default=5,
        ge=0,
        le=50,
        description="Number of tag suggestions returned with search results",
    )
    max_autocomplete_suggestions: int = Field(default=10, ge=1, le=50)

    # Logging Settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    # CORS
    cors_origins: list[str] = Field(default=["*"])

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("embedding_cache_key")
    @classmethod
    def validate_embedding_cache_key(cls, v: str) -> str:
        """Ensure cache key mode is valid."""
        valid_modes = {"prefix", "content"}
        v_lower = v.lower()
        if v_lower not in valid_modes:
            raise ValueError(f"embedding_cache_key must be one of {valid_modes}, got '{v}'")
        return v_lower

    @field_validator("index_fingerprint")
    @classmethod
    def validate_index_fingerprint(cls, v: str) -> str:
        """Ensure fingerprint mode is valid."""
        valid_modes = {"structural", "content"}
        v_lower = v.lower()
        if v_lower not in valid_modes:
            raise ValueError(f"index_fingerprint must be one of {valid_modes}, got '{v}'")
        return v_lower

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}, got '{v}'")
        return v_upper

    @field_validator("openai_api_key", mode="before")
    @classmethod
    def validate_api_key(cls, v: str | None) -> str | None:
        """Treat an empty key as unset and reject obviously wrong ones."""
        if v is None:
            return v
        v = str(v).strip()
        if v == "":
            return None
        if v == "your-openai-api-key-here":
            raise ValueError(
                "openai_api_key must be set to a valid API key, "
                "not the placeholder value"
            )
        # OpenAI keys typically start with 'sk-'
        if not v.startswith("sk-"):
            raise ValueError(
                "openai_api_key should start with 'sk-' "
                "(OpenAI API key format)"
            )
        return v

    @field_validator("bookmarks_path", mode="before")
    @classmethod
    def validate_bookmarks_path(cls, v) -> Path:
        """Convert string to Path and expand the user directory."""
        return Path(v).expanduser()

    def model_post_init(self, __context) -> None:
        """Additional validation after model initialization."""
        if self.default_page_size > self.max_page_size:
            raise ValueError(
                f"default_page_size ({self.default_page_size}) must be <= "
                f"max_page_size ({self.max_page_size})"
            )

    @property
    def embeddings_enabled(self) -> bool:
        """Whether an external embedding provider is configured."""
        return self.openai_api_key is not None


# Global settings instance, built on first use so that invalid
# configuration fails fast at startup
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance.

    Returns:
        Settings: The application settings

    Raises:
        ValueError: If settings validation fails
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from environment.

    Returns:
        Settings: The reloaded application settings
    """
    global _settings
    _settings = Settings()
    return _settings
