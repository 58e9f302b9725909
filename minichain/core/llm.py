"""
LLM Module

This module turns prompts into normalized results: ranked generations per
prompt plus usage accounting summed over every provider call.

Architecture:
- Generation / LLMResult: Immutable result dataclasses
- OpenAIChat: Resolves the model at construction time and drives a
  CompletionProvider, one call per prompt

Usage:
    from minichain.core.llm import OpenAIChat

    llm = OpenAIChat(model_name="gpt-4")
    result = llm.generate(["Tell me a joke", "Tell me a fact"])
    print(result.get_first_generation_text())
    print(result.get_llm_output())

    # Single-prompt shorthand
    print(llm("What would be a good company name?"))
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from minichain.config import settings
from minichain.core.completions import (
    CompletionProvider,
    CompletionResponse,
    Message,
    OpenAIChatCompletionProvider,
    TokenUsage,
)
from minichain.core.models import ChatModel, ModelConfig
from minichain.exceptions import EmptyResult, InvalidArgument
from minichain.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Generation:
    """
    One candidate answer.

    Attributes:
        text: Generated text
        generation_info: Provider details such as finish_reason, if any
    """
    text: str
    generation_info: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class LLMResult:
    """
    Result of a generate call.

    Attributes:
        generations: One batch per input prompt, in prompt order; each batch
            lists generations in provider rank order and may be empty
        token_usage: Usage summed over every provider call
        model_name: Model the request was resolved to
    """
    generations: Tuple[Tuple[Generation, ...], ...] = ()
    token_usage: TokenUsage = field(default_factory=TokenUsage)
    model_name: str = ""

    def get_generations(self) -> List[List[Generation]]:
        return [list(batch) for batch in self.generations]

    def get_first_generation_text(self) -> str:
        """
        Text of the first generation of the first prompt.

        Raises:
            EmptyResult: If there is no first generation
        """
        if not self.generations or not self.generations[0]:
            raise EmptyResult("The first generation batch is empty")
        return self.generations[0][0].text

    def get_llm_output(self) -> Dict[str, Any]:
        """Provider-agnostic usage summary: ``{"token_usage": {...}}``."""
        return {"token_usage": self.token_usage.to_dict()}


def _to_batch(response: CompletionResponse) -> Tuple[Generation, ...]:
    return tuple(
        Generation(
            text=choice.text,
            generation_info={"finish_reason": choice.finish_reason}
            if choice.finish_reason is not None else None
        )
        for choice in response.choices
    )


class OpenAIChat:
    """
    Chat model wrapper producing LLMResults.

    The model identifier is resolved when the object is built, so an
    unsupported model fails before any provider call.

    Example:
        llm = OpenAIChat(completion_provider=provider, model_kwargs={"top_p": 0.9})
        llm.to_dict()  # {"model_name": "gpt-3.5-turbo", "model_kwargs": {"top_p": 0.9}}
    """

    def __init__(
        self,
        completion_provider: Optional[CompletionProvider] = None,
        model_name: Optional[str] = None,
        model_kwargs: Optional[Dict[str, Any]] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        n: Optional[int] = None,
        prefix_messages: Optional[Sequence[Message]] = None
    ):
        """
        Initialize the chat model.

        Args:
            completion_provider: Provider to call (defaults to an
                OpenAIChatCompletionProvider built from settings)
            model_name: Requested model, None for the standard tier
                (defaults to settings.llm.model_name)
            model_kwargs: Extra options sent with every request
            temperature: Sampling temperature (defaults to settings)
            max_tokens: Max completion tokens (defaults to settings)
            n: Choices per prompt (defaults to settings)
            prefix_messages: Messages sent before each prompt; only used when
                the default provider is built

        Raises:
            UnsupportedModel: If model_name is not a supported model
            InvalidArgument: If model_kwargs sets model, model_name or messages
        """
        requested = model_name if model_name is not None else settings.llm.model_name
        self._config = ModelConfig.create(requested, model_kwargs)

        self.temperature = temperature if temperature is not None else settings.llm.temperature
        self.max_tokens = max_tokens if max_tokens is not None else settings.llm.max_tokens
        self.n = n if n is not None else settings.llm.n

        if completion_provider is None:
            completion_provider = OpenAIChatCompletionProvider(prefix_messages=prefix_messages)
        elif prefix_messages:
            logger.warning("prefix_messages ignored: an explicit completion_provider was given")
        self.completion_provider = completion_provider

        logger.info(
            f"Initialized OpenAIChat: model={self.model_name.value}, "
            f"temperature={self.temperature}, max_tokens={self.max_tokens}"
        )

    @property
    def model_name(self) -> ChatModel:
        return self._config.model_name

    @property
    def model_kwargs(self) -> Dict[str, Any]:
        return dict(self._config.model_kwargs)

    @property
    def llm_type(self) -> str:
        return "openai-chat"

    @property
    def default_params(self) -> Dict[str, Any]:
        """Request options applied to every call, before model_kwargs."""
        params: Dict[str, Any] = {"temperature": self.temperature}
        if self.max_tokens is not None:
            params["max_tokens"] = self.max_tokens
        if self.n is not None and self.n != 1:
            params["n"] = self.n
        return params

    @property
    def identifying_params(self) -> Dict[str, Any]:
        return {"model_name": self.model_name.value, **self.default_params, **self._config.model_kwargs}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize as ``{"model_name": ..., "model_kwargs": {...}}``."""
        return self._config.to_dict()

    def _options(self, stop: Optional[Sequence[str]]) -> Dict[str, Any]:
        options = {**self.default_params, **self._config.model_kwargs}
        if stop is not None:
            options["stop"] = list(stop)
        return options

    def generate(
        self,
        prompts: Sequence[str],
        stop: Optional[Sequence[str]] = None
    ) -> LLMResult:
        """
        Run each prompt through the provider and aggregate the responses.

        Prompts are sent one at a time, in order.

        Args:
            prompts: Non-empty sequence of prompt strings
            stop: Optional stop sequences

        Returns:
            LLMResult with one generation batch per prompt

        Raises:
            InvalidArgument: If prompts is empty or contains a non-string
            CompletionProviderError: If a provider call fails
            UpstreamProtocolError: If a response lacks choices or usage
        """
        if isinstance(prompts, str):
            raise InvalidArgument("prompts must be a sequence of strings, not a single string")
        prompts = list(prompts)
        if not prompts:
            raise InvalidArgument("prompts must not be empty")
        for i, prompt in enumerate(prompts):
            if not isinstance(prompt, str):
                raise InvalidArgument(f"Prompt {i} is not a string", details={"index": i})

        options = self._options(stop)
        batches = []
        usage = TokenUsage()

        for prompt in prompts:
            response = self.completion_provider.complete(self.model_name, prompt, options)
            batches.append(_to_batch(response))
            usage = usage + response.usage

        logger.debug(
            f"Generated {sum(len(b) for b in batches)} completions for {len(prompts)} prompts, "
            f"total_tokens={usage.total_tokens}"
        )
        return LLMResult(
            generations=tuple(batches),
            token_usage=usage,
            model_name=self.model_name.value
        )

    def call(self, prompt: str, stop: Optional[Sequence[str]] = None) -> str:
        """Single-prompt shorthand for ``generate([prompt], stop).get_first_generation_text()``."""
        return self.generate([prompt], stop=stop).get_first_generation_text()

    def __call__(self, prompt: str, stop: Optional[Sequence[str]] = None) -> str:
        return self.call(prompt, stop=stop)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model_name={self.model_name.value!r})"
