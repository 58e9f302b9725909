"""
Embedding Provider Module

This module provides abstractions and implementations for text embedding generation.
It converts text into vectors that capture semantic meaning.

Architecture:
- EmbeddingProvider: Abstract base class defining the interface (ISP)
- OpenAIEmbeddingProvider: Concrete implementation for OpenAI-compatible APIs
- EmbeddingCache: Content-hash cache to avoid re-embedding identical texts

SOLID Principles:
- Interface Segregation: Small, focused EmbeddingProvider interface
- Dependency Inversion: Vector stores depend on EmbeddingProvider, not on HTTP
- Open/Closed: New providers can be added without modifying existing code

Usage:
    from minichain.core.embeddings import OpenAIEmbeddingProvider

    provider = OpenAIEmbeddingProvider()
    vectors = provider.embed_batch(["Hello world", "How are you?"])
"""

import hashlib
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from minichain.config import settings
from minichain.core.transport import post_json, validate_max_retries
from minichain.exceptions import EmbeddingProviderError, UpstreamProtocolError
from minichain.logger import get_logger

logger = get_logger(__name__)


class EmbeddingProvider(ABC):
    """
    Abstract base class for embedding providers.

    Implementations must return one vector per input text, in input order.
    Every vector from one provider instance has the same dimensionality.

    Methods:
        embed_batch: Embed multiple texts (the required contract)
        embed: Embed a single text
    """

    @property
    def dimension(self) -> Optional[int]:
        """Dimensionality of output vectors, if known up front."""
        return None

    @abstractmethod
    def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        """
        Generate embeddings for multiple texts.

        Args:
            texts: Input texts to embed

        Returns:
            One embedding vector per text, same order

        Raises:
            EmbeddingProviderError: On transport/provider failure
        """
        pass

    def embed(self, text: str) -> List[float]:
        """
        Generate embedding for a single text.

        Args:
            text: Input text to embed

        Returns:
            Embedding vector
        """
        vectors = self.embed_batch([text])
        if len(vectors) != 1:
            raise UpstreamProtocolError(
                f"Expected 1 embedding, provider returned {len(vectors)}"
            )
        return vectors[0]


class EmbeddingCache:
    """
    Content-hash cache for embeddings.

    Always keeps an in-memory map; when ``cache_dir`` is given, vectors are
    also written to one JSON file per text hash.
    """

    def __init__(self, cache_dir: Optional[str] = None, namespace: str = ""):
        """
        Initialize the embedding cache.

        Args:
            cache_dir: Optional directory for file-backed entries
            namespace: Mixed into the hash so different models do not collide
        """
        self.namespace = namespace
        self.cache_dir = Path(cache_dir) if cache_dir else None
        if self.cache_dir is not None:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        self._memory_cache: Dict[str, List[float]] = {}

    def _hash_text(self, text: str) -> str:
        """Generate a hash for the text content."""
        return hashlib.sha256(f"{self.namespace}\x00{text}".encode("utf-8")).hexdigest()[:16]

    def __len__(self) -> int:
        return len(self._memory_cache)

    def get(self, text: str) -> Optional[List[float]]:
        """
        Retrieve cached embedding if available.

        Args:
            text: The original text

        Returns:
            Cached embedding vector or None
        """
        text_hash = self._hash_text(text)

        if text_hash in self._memory_cache:
            return self._memory_cache[text_hash]

        if self.cache_dir is None:
            return None

        cache_file = self.cache_dir / f"{text_hash}.json"
        if cache_file.exists():
            try:
                embedding = json.loads(cache_file.read_text())
            except (json.JSONDecodeError, OSError) as e:
                logger.warning(f"Ignoring unreadable embedding cache file {cache_file}: {e}")
                return None
            self._memory_cache[text_hash] = embedding
            return embedding

        return None

    def set(self, text: str, embedding: List[float]) -> None:
        """
        Store embedding in cache.

        Args:
            text: The original text
            embedding: The embedding vector to cache
        """
        text_hash = self._hash_text(text)
        self._memory_cache[text_hash] = embedding

        if self.cache_dir is None:
            return

        cache_file = self.cache_dir / f"{text_hash}.json"
        try:
            cache_file.write_text(json.dumps(embedding))
        except OSError as e:
            logger.warning(f"Failed to write embedding cache: {e}")


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """
    OpenAI-compatible embedding provider.

    Features:
    - Automatic batching with configurable batch size
    - Retry with exponential backoff (inside the transport)
    - Optional caching to reduce API costs

    Example:
        provider = OpenAIEmbeddingProvider(model="text-embedding-ada-002")

        vector = provider.embed("Hello world")
        vectors = provider.embed_batch(["Hello", "World"])
    """

    # Known output sizes; other models report their size on first call
    MODEL_DIMENSIONS = {
        "text-embedding-ada-002": 1536,
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
    }

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        batch_size: Optional[int] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        use_cache: Optional[bool] = None,
        cache_dir: Optional[str] = None
    ):
        """
        Initialize the embedding provider.

        Args:
            api_key: API key (defaults to settings)
            base_url: API root URL (defaults to settings)
            model: Embedding model name (defaults to settings)
            batch_size: Number of texts to embed per API call (defaults to settings)
            timeout: Request timeout in seconds (defaults to settings)
            max_retries: Maximum attempts per request (defaults to settings)
            use_cache: Whether to cache embeddings (defaults to settings)
            cache_dir: Directory for the file-backed cache (defaults to settings)

        Raises:
            InvalidArgument: If max_retries is below 1
        """
        self.api_key = api_key or settings.openai.api_key
        self.base_url = base_url or settings.openai.base_url
        self.model = model or settings.embedding.model
        self.batch_size = batch_size or settings.embedding.batch_size
        self.timeout = timeout if timeout is not None else settings.openai.timeout
        self.max_retries = validate_max_retries(
            max_retries if max_retries is not None else settings.openai.max_retries
        )
        self._dimension: Optional[int] = self.MODEL_DIMENSIONS.get(self.model)

        use_cache = use_cache if use_cache is not None else settings.embedding.enable_cache
        self._cache = (
            EmbeddingCache(cache_dir or settings.embedding.cache_dir, namespace=self.model)
            if use_cache else None
        )

        logger.info(
            f"Initialized OpenAIEmbeddingProvider: model={self.model}, "
            f"batch_size={self.batch_size}, max_retries={self.max_retries}, "
            f"cache={'enabled' if self._cache is not None else 'disabled'}"
        )

    @property
    def dimension(self) -> Optional[int]:
        return self._dimension

    @property
    def _url(self) -> str:
        return f"{self.base_url.rstrip('/')}/embeddings"

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

    @staticmethod
    def _parse_embeddings(data: Dict[str, Any], expected: int) -> List[List[float]]:
        """
        Extract vectors from a response, ordered by each item's ``index``.

        Raises:
            UpstreamProtocolError: If the payload is malformed or short
        """
        items = data.get("data")
        if not isinstance(items, list):
            raise UpstreamProtocolError("Embedding response has no data list")
        if len(items) != expected:
            raise UpstreamProtocolError(
                f"Expected {expected} embeddings, provider returned {len(items)}"
            )

        ordered: List[Optional[List[float]]] = [None] * expected
        for position, item in enumerate(items):
            if not isinstance(item, dict) or not isinstance(item.get("embedding"), list):
                raise UpstreamProtocolError(f"Embedding item {position} has no embedding")
            index = item.get("index", position)
            valid_index = (
                not isinstance(index, bool) and isinstance(index, int)
                and 0 <= index < expected and ordered[index] is None
            )
            if not valid_index:
                raise UpstreamProtocolError(f"Embedding item {position} has invalid index {index!r}")
            try:
                ordered[index] = [float(x) for x in item["embedding"]]
            except (TypeError, ValueError) as e:
                raise UpstreamProtocolError(
                    f"Embedding item {position} has a non-numeric value"
                ) from e

        return ordered  # type: ignore

    def _call_api(self, texts: List[str]) -> List[List[float]]:
        data = post_json(
            self._url,
            headers=self._headers,
            body={"model": self.model, "input": texts},
            timeout=self.timeout,
            max_retries=self.max_retries,
            error_class=EmbeddingProviderError
        )
        embeddings = self._parse_embeddings(data, len(texts))
        if embeddings and self._dimension is None:
            self._dimension = len(embeddings[0])
        return embeddings

    def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        """
        Generate embeddings for multiple texts efficiently.

        Handles caching and batching automatically.

        Args:
            texts: Input texts

        Returns:
            List of embedding vectors in same order as input
        """
        if not texts:
            return []

        results: List[Optional[List[float]]] = [None] * len(texts)
        texts_to_embed: List[tuple] = []  # (original_index, text)

        for i, text in enumerate(texts):
            if self._cache is not None:
                cached = self._cache.get(text)
                if cached is not None:
                    results[i] = cached
                    continue
            texts_to_embed.append((i, text))

        if texts_to_embed:
            logger.info(f"Embedding {len(texts_to_embed)} texts ({len(texts) - len(texts_to_embed)} cached)")

            total_batches = (len(texts_to_embed) + self.batch_size - 1) // self.batch_size

            for batch_idx, batch_start in enumerate(range(0, len(texts_to_embed), self.batch_size)):
                batch = texts_to_embed[batch_start:batch_start + self.batch_size]
                batch_texts = [text for _, text in batch]

                if total_batches > 1:
                    logger.debug(f"Processing batch {batch_idx + 1}/{total_batches} ({len(batch_texts)} texts)")

                embeddings = self._call_api(batch_texts)

                for (original_idx, text), embedding in zip(batch, embeddings):
                    results[original_idx] = embedding
                    if self._cache is not None:
                        self._cache.set(text, embedding)
        else:
            logger.debug(f"All {len(texts)} embeddings served from cache")

        return results  # type: ignore
