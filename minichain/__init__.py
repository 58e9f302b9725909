"""
minichain - Source Package

A small toolkit for semantic retrieval and chat completions over
OpenAI-compatible APIs.

This package provides:
- An in-memory vector store ranked by cosine similarity
- A normalized LLM result model with usage accounting
- Model identifier resolution and validation
- A CLI for quick experiments
"""

__version__ = "0.3.0"

from minichain.config import settings
from minichain.core import (
    ChatModel,
    Document,
    InMemoryVectorStore,
    LLMResult,
    OpenAIChat,
    resolve_model,
)

__all__ = [
    "settings",
    "__version__",
    "ChatModel",
    "Document",
    "InMemoryVectorStore",
    "LLMResult",
    "OpenAIChat",
    "resolve_model",
]
