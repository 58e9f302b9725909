"""
Completion Provider Module

This module defines the contract between the LLM result model and the
chat completion API, plus an OpenAI-compatible HTTP implementation.

Architecture:
- CompletionResponse / CompletionChoice / TokenUsage: validated view of the
  raw JSON payload. Missing fields raise UpstreamProtocolError here, at the
  adapter boundary, instead of surfacing later as silent None values.
- CompletionProvider: Abstract base class the LLM depends on
- OpenAIChatCompletionProvider: Concrete implementation over requests

Usage:
    from minichain.core.completions import OpenAIChatCompletionProvider

    provider = OpenAIChatCompletionProvider(api_key="sk-...")
    response = provider.complete(ChatModel.GPT_4, "Hello!", {"temperature": 0})
    print(response.choices[0].text, response.usage.total_tokens)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from minichain.config import settings
from minichain.core.models import ChatModel
from minichain.core.transport import post_json, validate_max_retries
from minichain.exceptions import CompletionProviderError, UpstreamProtocolError
from minichain.logger import get_logger

logger = get_logger(__name__)

USAGE_FIELDS = ("prompt_tokens", "completion_tokens", "total_tokens")


@dataclass
class Message:
    """
    Represents a chat message.

    Attributes:
        role: Message role (system, user, assistant)
        content: Message content text
    """
    role: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        """Convert to API-compatible dictionary."""
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class TokenUsage:
    """
    Token accounting for one or more provider calls.

    Instances add field-wise, so totals over a batch are ``sum(usages, TokenUsage())``.
    """
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        if not isinstance(other, TokenUsage):
            return NotImplemented
        return TokenUsage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "TokenUsage":
        """
        Build from a raw ``usage`` record.

        Raises:
            UpstreamProtocolError: If the record or any counter is missing
        """
        if not isinstance(data, Mapping):
            raise UpstreamProtocolError("Completion response has no usage record")

        missing = [name for name in USAGE_FIELDS if name not in data]
        if missing:
            raise UpstreamProtocolError(
                f"Usage record is missing {', '.join(missing)}",
                details={"missing": missing}
            )

        counts = {}
        for name in USAGE_FIELDS:
            value = data[name]
            # bool is an int subclass but never a valid count
            if isinstance(value, bool) or not isinstance(value, int):
                raise UpstreamProtocolError(
                    f"Usage field {name} is not an integer: {value!r}",
                    details={"field": name}
                )
            counts[name] = value
        return cls(**counts)


@dataclass(frozen=True)
class CompletionChoice:
    """
    One candidate completion.

    Attributes:
        index: Provider rank, 0 first
        text: Generated text
        finish_reason: Why generation stopped, if reported
    """
    index: int
    text: str
    finish_reason: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any, position: int) -> "CompletionChoice":
        """
        Build from one element of a raw ``choices`` list.

        Chat responses carry the text in ``message.content``; legacy
        completion responses use ``text``.

        Args:
            data: Raw choice mapping
            position: Position in the list, used when ``index`` is absent
        """
        if not isinstance(data, Mapping):
            raise UpstreamProtocolError(f"Choice {position} is not an object")

        text = None
        message = data.get("message")
        if isinstance(message, Mapping):
            text = message.get("content")
        if text is None:
            text = data.get("text")
        if not isinstance(text, str):
            raise UpstreamProtocolError(
                f"Choice {position} has no message content or text",
                details={"position": position}
            )

        index = data.get("index", position)
        if isinstance(index, bool) or not isinstance(index, int):
            raise UpstreamProtocolError(f"Choice {position} has a non-integer index: {index!r}")

        return cls(index=index, text=text, finish_reason=data.get("finish_reason"))


@dataclass(frozen=True)
class CompletionResponse:
    """
    Validated completion response.

    Attributes:
        choices: Choices ordered by provider index
        usage: Token usage for this call
        model: Model name reported by the provider
        id: Provider response id
    """
    choices: Tuple[CompletionChoice, ...]
    usage: TokenUsage
    model: str = ""
    id: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "CompletionResponse":
        """
        Validate a raw JSON payload.

        Raises:
            UpstreamProtocolError: If ``choices`` or ``usage`` is missing or malformed
        """
        if not isinstance(data, Mapping):
            raise UpstreamProtocolError("Completion response is not an object")

        raw_choices = data.get("choices")
        if not isinstance(raw_choices, list):
            raise UpstreamProtocolError("Completion response has no choices list")

        choices = [
            CompletionChoice.from_dict(choice, position)
            for position, choice in enumerate(raw_choices)
        ]
        # sorted() is stable, so duplicate indices keep list order
        choices = sorted(choices, key=lambda choice: choice.index)

        return cls(
            choices=tuple(choices),
            usage=TokenUsage.from_dict(data.get("usage")),
            model=str(data.get("model") or ""),
            id=str(data.get("id") or ""),
        )


class CompletionProvider(ABC):
    """
    Abstract base class for completion providers.

    Implementations own transport concerns (auth, timeouts, retries) and
    must return a validated CompletionResponse.
    """

    @abstractmethod
    def complete(
        self,
        model: ChatModel,
        prompt: str,
        options: Mapping[str, Any]
    ) -> CompletionResponse:
        """
        Generate completions for a single prompt.

        Args:
            model: Resolved model identifier
            prompt: Prompt text
            options: Request options (temperature, stop, n, ...)

        Returns:
            Validated CompletionResponse
        """
        pass


class OpenAIChatCompletionProvider(CompletionProvider):
    """
    OpenAI-compatible chat completion provider.

    Sends ``prefix_messages`` followed by the prompt as a user message to
    ``{base_url}/chat/completions``.

    Example:
        provider = OpenAIChatCompletionProvider(
            prefix_messages=[Message(role="system", content="Be brief.")]
        )
        response = provider.complete(ChatModel.GPT_35_TURBO, "Hi", {})
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        organization: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        prefix_messages: Optional[Sequence[Message]] = None
    ):
        """
        Initialize the provider.

        Args:
            api_key: API key (defaults to settings)
            base_url: API root URL (defaults to settings)
            organization: Organization header (defaults to settings)
            timeout: Request timeout in seconds (defaults to settings)
            max_retries: Maximum attempts per request (defaults to settings)
            prefix_messages: Messages sent before every prompt

        Raises:
            InvalidArgument: If max_retries is below 1
        """
        self.api_key = api_key or settings.openai.api_key
        self.base_url = base_url or settings.openai.base_url
        self.organization = organization if organization is not None else settings.openai.organization
        self.timeout = timeout if timeout is not None else settings.openai.timeout
        self.max_retries = validate_max_retries(
            max_retries if max_retries is not None else settings.openai.max_retries
        )
        self.prefix_messages: List[Message] = list(prefix_messages or [])

        logger.info(
            f"Initialized OpenAIChatCompletionProvider: base_url={self.base_url}, "
            f"max_retries={self.max_retries}, prefix_messages={len(self.prefix_messages)}"
        )

    @property
    def _url(self) -> str:
        return f"{self.base_url.rstrip('/')}/chat/completions"

    @property
    def _headers(self) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }
        if self.organization:
            headers["OpenAI-Organization"] = self.organization
        return headers

    def build_messages(self, prompt: str) -> List[Dict[str, str]]:
        """Message list sent for a prompt."""
        messages = [m.to_dict() for m in self.prefix_messages]
        messages.append(Message(role="user", content=prompt).to_dict())
        return messages

    def complete(
        self,
        model: ChatModel,
        prompt: str,
        options: Mapping[str, Any]
    ) -> CompletionResponse:
        """
        Call the chat completion endpoint.

        Raises:
            CompletionProviderError: On transport or HTTP failure
            UpstreamProtocolError: If the response lacks choices or usage
        """
        # The resolved model and the built messages always win over options
        body: Dict[str, Any] = {
            **options,
            "model": ChatModel(model).value,
            "messages": self.build_messages(prompt),
        }

        logger.debug(f"Requesting chat completion: model={body['model']}")
        data = post_json(
            self._url,
            headers=self._headers,
            body=body,
            timeout=self.timeout,
            max_retries=self.max_retries,
            error_class=CompletionProviderError
        )
        return CompletionResponse.from_dict(data)
