"""Centralized configuration using Pydantic Settings.

This module is the single source of truth for tunable values: extraction
bounds, cache sizing, learning thresholds, optional layers, the
language-model endpoint and layer weights.

Configuration can be overridden via environment variables:
- TIR_EXTRACT_MAX_DURATION_DAYS=21
- TIR_CACHE_TTL_SECONDS=600
- TIR_LLM_ENABLED=true
- TIR_LLM_API_KEY=...
- TIR_SIMILARITY_BACKEND=embedding
- TIR_PIPELINE_DISABLED_STAGES='["patterns"]'
- etc.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExtractionConfig(BaseSettings):
    """Plausibility bounds applied to every extracted value.

    Environment variables prefixed with TIR_EXTRACT_.
    """

    model_config = SettingsConfigDict(env_prefix="TIR_EXTRACT_")

    min_duration_days: int = 1
    max_duration_days: int = 30
    max_budget: float = 1_000_000.0
    max_travelers: int = 50
    max_days_ahead: int = 730
    default_currency: str = "USD"


class CacheConfig(BaseSettings):
    """Intent cache configuration.

    Environment variables prefixed with TIR_CACHE_.
    """

    model_config = SettingsConfigDict(env_prefix="TIR_CACHE_")

    enabled: bool = True
    ttl_seconds: float = 3600.0
    max_size: int = 100


class LearningConfig(BaseSettings):
    """Pattern-learning store configuration.

    Environment variables prefixed with TIR_LEARN_.
    """

    model_config = SettingsConfigDict(env_prefix="TIR_LEARN_")

    enabled: bool = True
    max_history: int = 1000
    min_pattern_frequency: int = 3
    similarity_threshold: float = 0.3
    similar_limit: int = 3
    store_path: Optional[Path] = None


class SimilarityConfig(BaseSettings):
    """Destination similarity layer configuration.

    Environment variables prefixed with TIR_SIMILARITY_.
    """

    model_config = SettingsConfigDict(env_prefix="TIR_SIMILARITY_")

    enabled: bool = True
    backend: Literal["fuzzy", "embedding"] = "fuzzy"
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    min_score: float = 0.75
    top_k: int = 3
    vector_cache_size: int = 512  # Cached phrase embeddings


class SequenceConfig(BaseSettings):
    """Sequence context model configuration.

    Environment variables prefixed with TIR_SEQUENCE_.
    """

    model_config = SettingsConfigDict(env_prefix="TIR_SEQUENCE_")

    enabled: bool = True
    max_messages: int = 10


class LLMConfig(BaseSettings):
    """Language-model fallback configuration.

    The fallback is disabled unless explicitly enabled and given an API key.

    Environment variables prefixed with TIR_LLM_.
    """

    model_config = SettingsConfigDict(env_prefix="TIR_LLM_")

    enabled: bool = False
    endpoint: str = "https://api.openai.com/v1/chat/completions"
    api_key: Optional[SecretStr] = None
    model: str = "gpt-4o-mini"
    timeout_seconds: float = 8.0
    temperature: float = 0.0
    max_tokens: int = 300


class PipelineConfig(BaseSettings):
    """Resolution pipeline configuration.

    Environment variables prefixed with TIR_PIPELINE_.
    """

    model_config = SettingsConfigDict(env_prefix="TIR_PIPELINE_")

    disabled_stages: List[str] = Field(default_factory=list)
    layer_timeout_seconds: float = 5.0
    max_workers: int = 4

    deterministic_weight: float = 0.4
    model_weight: float = 0.3
    embedding_weight: float = 0.2
    sequence_weight: float = 0.1

    high_threshold: float = 0.7
    medium_threshold: float = 0.4


class ConversationConfig(BaseSettings):
    """Conversation state machine configuration.

    Environment variables prefixed with TIR_CONVERSATION_.
    """

    model_config = SettingsConfigDict(env_prefix="TIR_CONVERSATION_")

    require_travelers: bool = True
    max_messages: int = 50


class ObservabilityConfig(BaseSettings):
    """Logging configuration.

    Environment variables prefixed with TIR_LOG_.
    """

    model_config = SettingsConfigDict(env_prefix="TIR_LOG_")

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    structured: bool = False  # Set True for JSON logging


class AppConfig(BaseSettings):
    """Main application configuration aggregating all sub-configs.

    Sub-configurations are accessed via attributes:

        config = get_config()
        print(config.extraction.max_duration_days)
        print(config.llm.enabled)

    Environment variables prefixed with TIR_.
    """

    model_config = SettingsConfigDict(env_prefix="TIR_")

    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    learning: LearningConfig = Field(default_factory=LearningConfig)
    similarity: SimilarityConfig = Field(default_factory=SimilarityConfig)
    sequence: SequenceConfig = Field(default_factory=SequenceConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    conversation: ConversationConfig = Field(default_factory=ConversationConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Get the singleton application configuration.

    Configuration is loaded once and cached. To reload configuration
    (e.g., in tests), use reset_config() first.

    Returns:
        The application configuration instance.
    """
    return AppConfig()


def reset_config() -> None:
    """Reset the configuration cache.

    Call this in tests to ensure a fresh configuration is loaded.
    """
    get_config.cache_clear()
