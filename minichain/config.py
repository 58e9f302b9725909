"""
Configuration Management Module

This module handles all library configuration using environment variables
with sensible defaults. It follows the 12-factor app methodology for configuration.

Usage:
    from minichain.config import settings
    print(settings.openai.base_url)

Environment variables are loaded from .env file (if present) and can be
overridden by system environment variables.

SOLID Principles Applied:
- Single Responsibility: Only handles configuration loading and validation
- Open/Closed: New settings can be added without modifying existing code
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
# This should be called before accessing any environment variables
load_dotenv()


def get_env(key: str, default: str = "", required: bool = False) -> str:
    """
    Get an environment variable with optional default and validation.

    Args:
        key: The environment variable name
        default: Default value if not set
        required: If True, raises ValueError when not set

    Returns:
        The environment variable value or default

    Raises:
        ValueError: If required=True and the variable is not set
    """
    value = os.getenv(key, default)
    if required and not value:
        raise ValueError(f"Required environment variable '{key}' is not set")
    return value


def get_env_int(key: str, default: int) -> int:
    """Get an environment variable as integer."""
    return int(get_env(key, str(default)))


def get_env_float(key: str, default: float) -> float:
    """Get an environment variable as float."""
    return float(get_env(key, str(default)))


def get_env_bool(key: str, default: bool) -> bool:
    """Get an environment variable as boolean."""
    value = get_env(key, str(default)).lower()
    return value in ("true", "1", "yes", "on")


def get_env_optional_int(key: str) -> Optional[int]:
    """Get an environment variable as integer, or None when unset."""
    value = get_env(key)
    return int(value) if value else None


@dataclass
class OpenAIConfig:
    """
    OpenAI-compatible API configuration.

    Shared by the chat completion and embedding providers.

    Attributes:
        api_key: API key sent as a bearer token
        base_url: API root, e.g. https://api.openai.com/v1
        organization: Optional organization header
        timeout: Request timeout in seconds
        max_retries: Maximum attempts per request on 429/5xx/transport errors
    """
    api_key: str = field(default_factory=lambda: get_env("OPENAI_API_KEY"))
    base_url: str = field(default_factory=lambda: get_env("OPENAI_BASE_URL", "https://api.openai.com/v1"))
    organization: str = field(default_factory=lambda: get_env("OPENAI_ORGANIZATION"))
    timeout: float = field(default_factory=lambda: get_env_float("OPENAI_TIMEOUT", 60.0))
    max_retries: int = field(default_factory=lambda: get_env_int("OPENAI_MAX_RETRIES", 3))

    def validate(self) -> bool:
        """Validate that required OpenAI settings are configured."""
        if not self.api_key:
            raise ValueError("OPENAI_API_KEY is required")
        if not self.base_url:
            raise ValueError("OPENAI_BASE_URL is required")
        if self.max_retries < 1:
            raise ValueError("OPENAI_MAX_RETRIES must be at least 1")
        return True


@dataclass
class LLMConfig:
    """
    LLM generation configuration.

    Attributes:
        model_name: Requested chat model; empty means the standard tier
        temperature: Sampling temperature
        max_tokens: Maximum tokens per completion, None for the provider default
        n: Number of choices to request per prompt
    """
    model_name: Optional[str] = field(default_factory=lambda: get_env("LLM_MODEL_NAME") or None)
    temperature: float = field(default_factory=lambda: get_env_float("LLM_TEMPERATURE", 0.7))
    max_tokens: Optional[int] = field(default_factory=lambda: get_env_optional_int("LLM_MAX_TOKENS"))
    n: int = field(default_factory=lambda: get_env_int("LLM_N", 1))


@dataclass
class EmbeddingConfig:
    """
    Embedding generation configuration.

    Attributes:
        model: Embedding model name
        batch_size: Number of texts to embed per API call
        enable_cache: Whether to cache embeddings by content hash
        cache_dir: Optional directory for the file-backed cache
    """
    model: str = field(default_factory=lambda: get_env("EMBEDDING_MODEL", "text-embedding-ada-002"))
    batch_size: int = field(default_factory=lambda: get_env_int("EMBEDDING_BATCH_SIZE", 32))
    enable_cache: bool = field(default_factory=lambda: get_env_bool("ENABLE_EMBEDDING_CACHE", False))
    cache_dir: Optional[str] = field(default_factory=lambda: get_env("EMBEDDING_CACHE_DIR") or None)

    def validate(self) -> bool:
        """Validate embedding settings."""
        if self.batch_size <= 0:
            raise ValueError("EMBEDDING_BATCH_SIZE must be positive")
        return True


@dataclass
class VectorStoreConfig:
    """
    Vector store configuration.

    Attributes:
        default_k: Number of documents returned when a search omits k
    """
    default_k: int = field(default_factory=lambda: get_env_int("VECTORSTORE_DEFAULT_K", 4))


@dataclass
class LoggingConfig:
    """
    Logging configuration.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        file: Optional log file path
    """
    level: str = field(default_factory=lambda: get_env("LOG_LEVEL", "INFO"))
    file: Optional[str] = field(default_factory=lambda: get_env("LOG_FILE") or None)


@dataclass
class Settings:
    """
    Main settings container aggregating all configuration sections.

    Access via the singleton `settings` instance.

    Example:
        from minichain.config import settings

        settings.openai.validate()
        batch_size = settings.embedding.batch_size
    """
    openai: OpenAIConfig = field(default_factory=OpenAIConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    vectorstore: VectorStoreConfig = field(default_factory=VectorStoreConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate_all(self) -> bool:
        """
        Validate all configuration sections.

        Returns:
            True if all validations pass

        Raises:
            ValueError: If any validation fails
        """
        self.openai.validate()
        self.embedding.validate()
        if self.vectorstore.default_k <= 0:
            raise ValueError("VECTORSTORE_DEFAULT_K must be positive")
        return True


# Singleton settings instance
# Import this in other modules: from minichain.config import settings
settings = Settings()
