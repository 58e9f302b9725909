"""
Pytest Configuration and Fixtures

This module provides shared fixtures and configuration for all tests.
"""

import os
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Set test environment before minichain builds its settings
os.environ["OPENAI_API_KEY"] = "test-key"
os.environ["OPENAI_BASE_URL"] = "https://api.test.local/v1"
os.environ.pop("LLM_MODEL_NAME", None)
os.environ.pop("LLM_MAX_TOKENS", None)
os.environ["ENABLE_EMBEDDING_CACHE"] = "false"

from minichain.core.completions import CompletionProvider, CompletionResponse  # noqa: E402
from minichain.core.embeddings import EmbeddingProvider  # noqa: E402


# Embedding used by the single-document round trip
FOO_BAR_BAZ_EMBEDDING = [
    -0.015587599,
    -0.03145355,
    -0.010950541,
    -0.014322372,
    -0.0121335285,
    -0.0009655265,
    -0.025747374,
    0.0009908311,
    -0.017751137,
    -0.010210384,
    0.0010643724,
]


class TableEmbeddingProvider(EmbeddingProvider):
    """Embeds texts by looking them up in a fixed table and records each batch."""

    def __init__(self, table):
        self.table = table
        self.batches = []

    def embed_batch(self, texts):
        self.batches.append(list(texts))
        return [list(self.table[text]) for text in texts]


class ScriptedCompletionProvider(CompletionProvider):
    """Returns canned payloads in order and records every call."""

    def __init__(self, payloads):
        self.payloads = list(payloads)
        self.calls = []

    def complete(self, model, prompt, options):
        self.calls.append({"model": model, "prompt": prompt, "options": dict(options)})
        return CompletionResponse.from_dict(self.payloads.pop(0))


def chat_payload(contents, usage=(23, 4, 27), model="gpt-3.5-turbo", finish_reason="stop"):
    """Build a chat completion payload with one choice per content string."""
    payload = {
        "id": "chatcmpl-6yGpmeZ6v6cALFWagesgA9zvaYNTs",
        "object": "chat.completion",
        "created": 1679822410,
        "model": model,
        "choices": [
            {
                "index": i,
                "message": {"role": "assistant", "content": content},
                "finish_reason": finish_reason,
            }
            for i, content in enumerate(contents)
        ],
    }
    if usage is not None:
        payload["usage"] = {
            "prompt_tokens": usage[0],
            "completion_tokens": usage[1],
            "total_tokens": usage[2],
        }
    return payload


@pytest.fixture
def sample_texts():
    """Sample texts for testing."""
    return [
        "How do I reset my password? Click 'Forgot Password' on the login page.",
        "What payment methods do you accept? We accept Visa, MasterCard, and PayPal.",
        "How can I track my order? Log into your account and go to Order History.",
    ]


@pytest.fixture
def embedding_table():
    """Small hand-made vectors with known cosine relationships."""
    return {
        "apple": [1.0, 0.0, 0.0],
        "banana": [0.8, 0.6, 0.0],
        "car": [0.0, 1.0, 0.0],
        "truck": [0.0, 0.6, 0.8],
        "nothing": [0.0, 0.0, 0.0],
        "fruit": [1.0, 0.1, 0.0],
        "vehicle": [0.0, 1.0, 0.2],
        "wide": [1.0, 0.0, 0.0, 0.0],
    }


@pytest.fixture
def table_provider(embedding_table):
    """Embedding provider backed by embedding_table."""
    return TableEmbeddingProvider(embedding_table)


@pytest.fixture
def foo_bar_baz_provider():
    """Mock provider that returns the same vector for every text."""
    provider = MagicMock(spec=EmbeddingProvider)
    provider.embed_batch.side_effect = lambda texts: [list(FOO_BAR_BAZ_EMBEDDING) for _ in texts]
    provider.embed.return_value = list(FOO_BAR_BAZ_EMBEDDING)
    return provider


@pytest.fixture
def make_chat_payload():
    """Factory for chat completion payloads."""
    return chat_payload


@pytest.fixture
def happy_feet_payload():
    """Single-choice completion answering with 'Happy Feet Co.'."""
    return chat_payload(["Happy Feet Co."])


@pytest.fixture
def scripted_provider():
    """Factory for ScriptedCompletionProvider."""
    return ScriptedCompletionProvider


@pytest.fixture
def mock_http_response():
    """Factory for mocked requests.Response objects."""
    def _make(status_code=200, json_data=None, headers=None, text=""):
        response = MagicMock()
        response.status_code = status_code
        response.headers = headers or {}
        response.text = text
        if isinstance(json_data, Exception):
            response.json.side_effect = json_data
        else:
            response.json.return_value = json_data
        return response
    return _make
