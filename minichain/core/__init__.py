"""
Core Module Package

This package contains the core abstractions and implementations for:
- Documents: Text plus metadata held by vector stores
- Embeddings: Converting text to vector representations
- Vector Store: Storing embeddings and ranking them by similarity
- Completions: The chat completion provider contract
- Models: Supported model identifiers and their resolution
- LLM: Normalized generation results and usage accounting
"""

from minichain.core.documents import Document
from minichain.core.embeddings import EmbeddingProvider, OpenAIEmbeddingProvider, EmbeddingCache
from minichain.core.vectorstore import VectorStore, InMemoryVectorStore, cosine_similarity
from minichain.core.completions import (
    CompletionProvider,
    CompletionResponse,
    CompletionChoice,
    Message,
    OpenAIChatCompletionProvider,
    TokenUsage,
)
from minichain.core.models import ChatModel, ModelConfig, resolve_model
from minichain.core.llm import Generation, LLMResult, OpenAIChat

__all__ = [
    "Document",
    "EmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "EmbeddingCache",
    "VectorStore",
    "InMemoryVectorStore",
    "cosine_similarity",
    "CompletionProvider",
    "CompletionResponse",
    "CompletionChoice",
    "Message",
    "OpenAIChatCompletionProvider",
    "TokenUsage",
    "ChatModel",
    "ModelConfig",
    "resolve_model",
    "Generation",
    "LLMResult",
    "OpenAIChat",
]
