"""Exception hierarchy for minichain.

Every error raised by the library derives from ``MinichainError``. Caller
precondition errors additionally subclass ``ValueError`` and the empty-result
error subclasses ``LookupError`` so generic handlers keep working.
"""

from typing import Any, Dict, Iterable, Optional


class MinichainError(Exception):
    """Base exception for all minichain errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for structured logging."""
        return {
            "error": {
                "message": self.message,
                "code": self.code,
                "details": self.details,
            }
        }


class InvalidArgument(MinichainError, ValueError):
    """A caller violated a precondition (bad k, mismatched lengths, ...)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="INVALID_ARGUMENT", details=details)


class DimensionMismatch(MinichainError, ValueError):
    """Embedding dimensionality disagrees with the vectors already stored."""

    def __init__(self, expected: int, actual: int, message: Optional[str] = None):
        self.expected = expected
        self.actual = actual
        super().__init__(
            message=message or f"Embedding dimension mismatch: expected {expected}, got {actual}",
            code="DIMENSION_MISMATCH",
            details={"expected": expected, "actual": actual},
        )


class UnsupportedModel(MinichainError, ValueError):
    """Requested model identifier is not one of the supported values."""

    def __init__(self, model: str, supported: Iterable[str]):
        self.model = model
        self.supported = list(supported)
        super().__init__(
            message=(
                f"Unsupported model '{model}'. "
                f"Supported models: {', '.join(self.supported)}"
            ),
            code="UNSUPPORTED_MODEL",
            details={"model": model, "supported": self.supported},
        )


class ProviderError(MinichainError):
    """Opaque failure reported by an external provider (network, auth, rate limit)."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.status_code = status_code
        error_details = details or {}
        if status_code is not None:
            error_details["status_code"] = status_code
        super().__init__(message=message, details=error_details)


class EmbeddingProviderError(ProviderError):
    """The embedding provider failed to produce vectors."""


class CompletionProviderError(ProviderError):
    """The completion provider failed to produce a response."""


class UpstreamProtocolError(MinichainError):
    """A provider response is missing fields the library depends on."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="UPSTREAM_PROTOCOL_ERROR", details=details)


class EmptyResult(MinichainError, LookupError):
    """A generation was requested from a batch that has none."""

    def __init__(self, message: str = "The result contains no generations"):
        super().__init__(message=message, code="EMPTY_RESULT")
