"""
Model Configuration Module

Resolves user-supplied chat model identifiers to a closed set of canonical
values before any network call is made.

Usage:
    from minichain.core.models import ChatModel, resolve_model

    resolve_model(None)       # ChatModel.GPT_35_TURBO
    resolve_model("gpt-4")    # ChatModel.GPT_4
    resolve_model("gpt-5")    # raises UnsupportedModel
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from minichain.exceptions import InvalidArgument, UnsupportedModel

# Request fields owned by the provider; model_kwargs may not override them
RESERVED_MODEL_KWARGS = frozenset({"model", "model_name", "messages"})


class ChatModel(str, Enum):
    """Chat completion models understood by the completion provider."""
    GPT_35_TURBO = "gpt-3.5-turbo"
    GPT_35_TURBO_0301 = "gpt-3.5-turbo-0301"
    GPT_4 = "gpt-4"
    GPT_4_0314 = "gpt-4-0314"
    GPT_4_32K = "gpt-4-32k"
    GPT_4_32K_0314 = "gpt-4-32k-0314"

    @classmethod
    def default(cls) -> "ChatModel":
        """The standard tier used when no model is requested."""
        return cls.GPT_35_TURBO

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]

    @property
    def is_advanced(self) -> bool:
        return self.value.startswith("gpt-4")

    def __str__(self) -> str:
        return self.value


def resolve_model(requested: Optional[Union[str, ChatModel]] = None) -> ChatModel:
    """
    Map a requested model identifier to a canonical ChatModel.

    Args:
        requested: Model name, ChatModel member, or None for the default

    Returns:
        The matching ChatModel

    Raises:
        UnsupportedModel: If the identifier is not a supported model
    """
    if requested is None:
        return ChatModel.default()
    if isinstance(requested, ChatModel):
        return requested
    try:
        return ChatModel(requested)
    except ValueError:
        raise UnsupportedModel(str(requested), ChatModel.values()) from None


@dataclass(frozen=True)
class ModelConfig:
    """
    Resolved model identifier plus free-form model keyword arguments.

    Build through ``ModelConfig.create`` so the identifier is validated.
    """
    model_name: ChatModel
    model_kwargs: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        model_name: Optional[Union[str, ChatModel]] = None,
        model_kwargs: Optional[Dict[str, Any]] = None
    ) -> "ModelConfig":
        """
        Resolve the model and copy the keyword arguments.

        Raises:
            UnsupportedModel: If model_name is not a supported model
            InvalidArgument: If model_kwargs sets a reserved request field
        """
        model_kwargs = dict(model_kwargs or {})
        reserved = sorted(RESERVED_MODEL_KWARGS.intersection(model_kwargs))
        if reserved:
            raise InvalidArgument(
                f"model_kwargs may not set reserved request fields: {', '.join(reserved)}",
                details={"reserved": reserved}
            )
        return cls(
            model_name=resolve_model(model_name),
            model_kwargs=model_kwargs
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize as ``{"model_name": ..., "model_kwargs": {...}}``."""
        return {
            "model_name": self.model_name.value,
            "model_kwargs": dict(self.model_kwargs),
        }
