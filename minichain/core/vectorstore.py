"""
Vector Store Module

This module provides abstractions and implementations for vector storage and search.
It stores document embeddings and enables similarity-based retrieval.

Architecture:
- VectorStore: Abstract base class defining the interface (ISP)
- InMemoryVectorStore: Brute-force cosine similarity over an in-memory list
- cosine_similarity: Total similarity function (zero vectors score 0.0)

SOLID Principles:
- Interface Segregation: Focused VectorStore interface
- Dependency Inversion: Stores depend on the EmbeddingProvider abstraction
- Open/Closed: Indexed stores can be added behind the same interface

Usage:
    from minichain.core.vectorstore import InMemoryVectorStore

    store = InMemoryVectorStore(embedding_provider)
    store.add_texts(["foo bar baz"], [{"source": "notes.txt"}])
    docs = store.similarity_search("foo", k=1)
"""

import math
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple

from minichain.config import settings
from minichain.core.documents import Document
from minichain.core.embeddings import EmbeddingProvider
from minichain.exceptions import DimensionMismatch, InvalidArgument, UpstreamProtocolError
from minichain.logger import get_logger

logger = get_logger(__name__)

Embedding = List[float]


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors.

    Returns 0.0 instead of NaN when either vector has zero norm.

    Raises:
        DimensionMismatch: If the vectors differ in length
    """
    if len(a) != len(b):
        raise DimensionMismatch(expected=len(a), actual=len(b))

    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (norm_a * norm_b)


def _validate_k(k: Any) -> int:
    # bool is an int subclass; True is not a meaningful k
    if isinstance(k, bool) or not isinstance(k, int):
        raise InvalidArgument(f"k must be a positive integer, got {k!r}", details={"k": k})
    if k <= 0:
        raise InvalidArgument(f"k must be a positive integer, got {k}", details={"k": k})
    return k


class VectorStore(ABC):
    """
    Abstract base class for vector stores.

    The interface makes no assumption about how entries are held, so an
    approximate nearest-neighbor index can implement it as well as a list.

    All implementations must support:
    - Adding texts (embedded through the store's EmbeddingProvider)
    - Similarity search by query text or by vector
    - Entry count
    """

    def __init__(self, embedding_provider: EmbeddingProvider):
        self.embedding_provider = embedding_provider

    @classmethod
    def from_texts(
        cls,
        texts: Sequence[str],
        embedding_provider: EmbeddingProvider,
        metadatas: Optional[Sequence[Dict[str, Any]]] = None,
        **kwargs: Any
    ) -> "VectorStore":
        """
        Build a store and load it with texts.

        Args:
            texts: Texts to add
            embedding_provider: Provider used for storage and queries
            metadatas: Optional metadata per text
            **kwargs: Passed to the store constructor

        Returns:
            The populated store
        """
        store = cls(embedding_provider, **kwargs)
        store.add_texts(texts, metadatas)
        return store

    @abstractmethod
    def add_texts(
        self,
        texts: Sequence[str],
        metadatas: Optional[Sequence[Dict[str, Any]]] = None
    ) -> List[str]:
        """
        Embed texts and add them to the store.

        Args:
            texts: Texts to add, stored in input order
            metadatas: Optional metadata per text; None or empty means no metadata

        Returns:
            Ids of the new entries

        Raises:
            InvalidArgument: If metadatas is non-empty and its length differs from texts
            DimensionMismatch: If new vectors disagree with stored dimensionality
        """
        pass

    @abstractmethod
    def similarity_search_with_score(
        self,
        query: str,
        k: Optional[int] = None
    ) -> List[Tuple[Document, float]]:
        """
        Return the k most similar documents with their scores, best first.

        Raises:
            InvalidArgument: If k is not a positive integer
            DimensionMismatch: If the query vector disagrees with stored entries
        """
        pass

    @abstractmethod
    def similarity_search_by_vector(
        self,
        embedding: Sequence[float],
        k: Optional[int] = None
    ) -> List[Document]:
        """Return the k documents most similar to a precomputed vector."""
        pass

    @abstractmethod
    def count(self) -> int:
        """Get the number of entries in the store."""
        pass

    def similarity_search(self, query: str, k: Optional[int] = None) -> List[Document]:
        """
        Return the k documents most similar to the query text.

        Args:
            query: Query text
            k: Number of documents (defaults to settings.vectorstore.default_k)

        Returns:
            At most k documents, most similar first
        """
        return [doc for doc, _ in self.similarity_search_with_score(query, k)]

    def __len__(self) -> int:
        return self.count()


class InMemoryVectorStore(VectorStore):
    """
    Vector store that keeps (Document, embedding) pairs in a list and ranks
    them by cosine similarity with a linear scan.

    Not internally locked: callers must serialize concurrent ``add_texts``.
    Entries are appended as complete pairs, so a concurrent search sees each
    entry either fully or not at all.

    Example:
        store = InMemoryVectorStore(provider)
        store.add_texts(["foo bar baz"])

        for doc, score in store.similarity_search_with_score("foo", k=3):
            print(f"{doc.page_content} (score: {score:.3f})")
    """

    def __init__(self, embedding_provider: EmbeddingProvider):
        """
        Initialize an empty store.

        Args:
            embedding_provider: Provider used for both storage and queries
        """
        super().__init__(embedding_provider)
        self._entries: List[Tuple[str, Document, Embedding]] = []
        self._dimension: Optional[int] = None

        logger.debug(f"Initialized InMemoryVectorStore with {type(embedding_provider).__name__}")

    @property
    def dimension(self) -> Optional[int]:
        """Dimensionality of stored vectors, None while the store is empty."""
        return self._dimension

    def _check_dimension(self, vector: Sequence[float], expected: Optional[int]) -> None:
        if expected is not None and len(vector) != expected:
            raise DimensionMismatch(expected=expected, actual=len(vector))

    def add_texts(
        self,
        texts: Sequence[str],
        metadatas: Optional[Sequence[Dict[str, Any]]] = None
    ) -> List[str]:
        texts = list(texts)
        metadatas = list(metadatas or [])
        if metadatas and len(metadatas) != len(texts):
            raise InvalidArgument(
                f"Got {len(metadatas)} metadatas for {len(texts)} texts",
                details={"texts": len(texts), "metadatas": len(metadatas)}
            )
        if not texts:
            return []

        embeddings = self.embedding_provider.embed_batch(texts)
        if len(embeddings) != len(texts):
            raise UpstreamProtocolError(
                f"Embedding provider returned {len(embeddings)} vectors for {len(texts)} texts"
            )

        # Validate the whole batch before touching the store
        expected = self._dimension if self._dimension is not None else len(embeddings[0])
        for vector in embeddings:
            self._check_dimension(vector, expected)

        new_entries = []
        for i, (text, vector) in enumerate(zip(texts, embeddings)):
            document = Document(page_content=text, metadata=metadatas[i] if metadatas else {})
            new_entries.append((uuid.uuid4().hex, document, list(vector)))

        self._dimension = expected
        self._entries.extend(new_entries)

        logger.info(f"Added {len(new_entries)} texts to vector store ({len(self._entries)} total)")
        return [entry_id for entry_id, _, _ in new_entries]

    def _rank(self, query_vector: Sequence[float], k: int) -> List[Tuple[Document, float]]:
        entries = list(self._entries)
        if not entries:
            return []

        self._check_dimension(query_vector, self._dimension)
        scored = [
            (document, cosine_similarity(query_vector, vector))
            for _, document, vector in entries
        ]
        # sorted() is stable: equal scores keep insertion order
        scored = sorted(scored, key=lambda pair: pair[1], reverse=True)
        return scored[:k]

    def similarity_search_with_score(
        self,
        query: str,
        k: Optional[int] = None
    ) -> List[Tuple[Document, float]]:
        k = _validate_k(settings.vectorstore.default_k if k is None else k)
        if not self._entries:
            logger.debug("Similarity search on empty store")
            return []

        query_vector = self.embedding_provider.embed(query)
        results = self._rank(query_vector, k)
        logger.debug(f"Search returned {len(results)} results (k={k})")
        return results

    def similarity_search_by_vector(
        self,
        embedding: Sequence[float],
        k: Optional[int] = None
    ) -> List[Document]:
        k = _validate_k(settings.vectorstore.default_k if k is None else k)
        return [doc for doc, _ in self._rank(embedding, k)]

    def count(self) -> int:
        return len(self._entries)

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the vector store.

        Returns:
            Dictionary with store statistics
        """
        return {
            "document_count": self.count(),
            "dimension": self._dimension,
            "embedding_provider": type(self.embedding_provider).__name__,
        }
