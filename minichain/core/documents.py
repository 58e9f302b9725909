"""Document value type stored by vector stores."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping


@dataclass(frozen=True)
class Document:
    """
    A piece of text plus optional metadata.

    Equality is structural: two documents with the same text and metadata
    compare equal. Metadata is a read-only view over a private copy, so a
    document handed out by a store cannot be used to edit the stored entry.
    Values inside the metadata are not copied.

    Attributes:
        page_content: The document text
        metadata: Arbitrary metadata (source, tags, ...)
    """
    page_content: str
    # Excluded from the hash: a mapping is not hashable
    metadata: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata or {})))
