"""Dependency injection container.

This module provides a simple DI container without external frameworks.
It allows registering and resolving dependencies for the application.

Design principles:
1. No magic - explicit registration and resolution
2. Testable - easy to swap implementations
3. Lazy loading - adapters instantiated on first use
4. Thread-safe - one container serves concurrent sessions
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, TypeVar

from .config import AppConfig, get_config

T = TypeVar("T")


@dataclass
class Container:
    """Dependency injection container.

    Usage:
        # Production
        container = Container.create_default()
        service = container.resolve(ConversationService)

        # Testing
        container = Container()
        container.register(CompletionPort, lambda: FakeCompletion())
        completion = container.resolve(CompletionPort)

    Attributes:
        config: Application configuration
    """

    config: AppConfig = field(default_factory=get_config)

    _factories: Dict[type[Any], Callable[[], Any]] = field(
        default_factory=dict, repr=False
    )
    _singletons: Dict[type[Any], Any] = field(default_factory=dict, repr=False)
    _singleton_types: set[type[Any]] = field(default_factory=set, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def register(
        self,
        port_type: type[Any],
        factory: Callable[[], Any],
        singleton: bool = True,
    ) -> None:
        """Register a factory for a port type.

        Args:
            port_type: The type (usually a Protocol) to register.
            factory: A callable that creates instances of the type.
            singleton: If True, only one instance is created.
        """
        with self._lock:
            self._factories[port_type] = factory
            self._singletons.pop(port_type, None)
            if singleton:
                self._singleton_types.add(port_type)
            else:
                self._singleton_types.discard(port_type)

    def resolve(self, port_type: type[Any]) -> Any:
        """Resolve an instance of a port type.

        Raises:
            KeyError: If the type is not registered.
        """
        with self._lock:
            if port_type not in self._factories:
                raise KeyError(f"Type not registered: {port_type}")

            if port_type in self._singleton_types:
                if port_type not in self._singletons:
                    self._singletons[port_type] = self._factories[port_type]()
                return self._singletons[port_type]

            return self._factories[port_type]()

    def is_registered(self, port_type: type[Any]) -> bool:
        return port_type in self._factories

    def clear_singletons(self) -> None:
        """Clear all cached singletons.

        Call this in tests to ensure fresh instances.
        """
        with self._lock:
            self._singletons.clear()

    def clear_all(self) -> None:
        """Clear all registrations and singletons."""
        with self._lock:
            self._factories.clear()
            self._singletons.clear()
            self._singleton_types.clear()

    @classmethod
    def create_default(cls, config: Optional[AppConfig] = None) -> Container:
        """Create a container with default production bindings.

        Optional layers are bound according to configuration: the
        similarity backend (rapidfuzz or transformers embeddings), the
        sequence model, the completion endpoint and the pattern store
        (in memory, or persisted when a store path is set).

        Args:
            config: Optional configuration override.

        Returns:
            A configured Container instance.
        """
        from .adapters.cache import InMemoryCache, NullCache
        from .adapters.completion import HttpCompletionAdapter, NullCompletion
        from .adapters.patterns import InMemoryPatternStore, JsonFilePatternStore
        from .adapters.sequence import KeywordSequenceModel
        from .adapters.similarity import EmbeddingDestinationResolver, FuzzyDestinationResolver
        from .nlp import ContextEnricher, LanguageModelFallback, LexicalExtractor, PredictiveCompleter
        from .ports.cache import CachePort
        from .ports.completion import CompletionPort
        from .ports.patterns import PatternStorePort
        from .ports.sequence import SequenceContextPort
        from .ports.similarity import DestinationSimilarityPort
        from .services import ConversationService, IntentCache, LearningRecorder, ResolutionPipeline
        from .services.resolution import build_stages

        config = config or get_config()
        container = cls(config=config)

        # Intent cache (shared across sessions)
        def create_intent_cache() -> IntentCache:
            if not config.cache.enabled:
                return IntentCache(NullCache(), enabled=False)
            return IntentCache(
                InMemoryCache(
                    default_ttl_seconds=config.cache.ttl_seconds,
                    max_size=config.cache.max_size,
                    name="intent",
                )
            )

        container.register(IntentCache, create_intent_cache)

        # Model cache for lazily loaded pipelines (embeddings are cached by the resolver)
        model_cache: InMemoryCache[Any] = InMemoryCache(name="models")
        container.register(CachePort, lambda: model_cache)

        # Completion endpoint
        def create_completion() -> CompletionPort:
            if not config.llm.enabled:
                return NullCompletion()
            return HttpCompletionAdapter(config.llm)

        container.register(CompletionPort, create_completion)

        # Similarity backend based on config
        def create_similarity() -> DestinationSimilarityPort:
            if config.similarity.backend == "embedding":
                return EmbeddingDestinationResolver(config.similarity, model_cache)
            return FuzzyDestinationResolver(config.similarity)

        container.register(DestinationSimilarityPort, create_similarity)
        container.register(SequenceContextPort, lambda: KeywordSequenceModel(config.sequence))

        # Pattern store
        def create_pattern_store() -> PatternStorePort:
            if config.learning.store_path is not None:
                return JsonFilePatternStore(config.learning, path=config.learning.store_path)
            return InMemoryPatternStore(config.learning)

        container.register(PatternStorePort, create_pattern_store)
        container.register(
            LearningRecorder,
            lambda: LearningRecorder(
                container.resolve(PatternStorePort), enabled=config.learning.enabled
            ),
        )

        # Pipeline
        def create_pipeline() -> ResolutionPipeline:
            lexical = LexicalExtractor(config.extraction)
            similarity = (
                container.resolve(DestinationSimilarityPort) if config.similarity.enabled else None
            )
            stages = build_stages(
                lexical=lexical,
                cache=container.resolve(IntentCache),
                enricher=ContextEnricher(),
                store=container.resolve(PatternStorePort) if config.learning.enabled else None,
                completer=PredictiveCompleter(config.extraction, similarity),
                similarity=similarity,
                sequence=(
                    container.resolve(SequenceContextPort) if config.sequence.enabled else None
                ),
                fallback=LanguageModelFallback(
                    container.resolve(CompletionPort), config.llm, config.extraction
                ),
                llm_config=config.llm,
                similar_limit=config.learning.similar_limit,
                top_k=config.similarity.top_k,
            )
            return ResolutionPipeline(stages, config.pipeline)

        container.register(ResolutionPipeline, create_pipeline)

        # Main service
        def create_conversation_service() -> ConversationService:
            return ConversationService(
                pipeline=container.resolve(ResolutionPipeline),
                recorder=container.resolve(LearningRecorder),
                config=config.conversation,
            )

        container.register(ConversationService, create_conversation_service)

        return container


# Global default container (lazy initialized)
_default_container: Optional[Container] = None
_container_lock = threading.Lock()


def get_container() -> Container:
    """Get the default application container.

    Returns:
        The default Container instance (creates one if needed).
    """
    global _default_container
    if _default_container is None:
        with _container_lock:
            if _default_container is None:
                _default_container = Container.create_default()
    return _default_container


def reset_container() -> None:
    """Reset the default container.

    Call this in tests to ensure a fresh container.
    """
    global _default_container
    with _container_lock:
        if _default_container is not None:
            _default_container.clear_all()
        _default_container = None
