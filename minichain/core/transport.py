"""
HTTP transport shared by the OpenAI-compatible providers.

Retry and backoff live here, at the provider boundary; the vector store and
result model above never retry.
"""

import time
from typing import Any, Dict, Optional, Type

import requests

from minichain.exceptions import InvalidArgument, ProviderError, UpstreamProtocolError
from minichain.logger import get_logger

logger = get_logger(__name__)


def validate_max_retries(max_retries: Any) -> int:
    """Reject attempt counts that would never send a request."""
    if isinstance(max_retries, bool) or not isinstance(max_retries, int) or max_retries < 1:
        raise InvalidArgument(
            f"max_retries must be an integer of at least 1, got {max_retries!r}",
            details={"max_retries": max_retries}
        )
    return max_retries


def _retry_delay(response: Optional[requests.Response], attempt: int) -> float:
    """Seconds to wait before the next attempt."""
    if response is not None:
        retry_after = response.headers.get("Retry-After")
        if retry_after:
            try:
                return max(0.0, float(retry_after))
            except ValueError:
                pass
    return float(2 ** attempt)


def post_json(
    url: str,
    headers: Dict[str, str],
    body: Dict[str, Any],
    timeout: float,
    max_retries: int,
    error_class: Type[ProviderError]
) -> Dict[str, Any]:
    """
    POST a JSON body and return the decoded JSON response.

    Rate limits (429), server errors (5xx) and transport failures are retried
    with exponential backoff. Other HTTP errors fail immediately.

    Args:
        url: Endpoint URL
        headers: Request headers
        body: JSON-serializable request body
        timeout: Per-request timeout in seconds
        max_retries: Maximum number of attempts
        error_class: ProviderError subclass raised on failure

    Returns:
        The decoded JSON object

    Raises:
        InvalidArgument: If max_retries is not a positive integer
        ProviderError: (as ``error_class``) if the request ultimately fails
        UpstreamProtocolError: If the response body is not a JSON object
    """
    max_retries = validate_max_retries(max_retries)
    last_exception: Optional[Exception] = None
    last_status: Optional[int] = None

    for attempt in range(max_retries):
        has_next = attempt < max_retries - 1
        try:
            response = requests.post(url, headers=headers, json=body, timeout=timeout)
        except requests.RequestException as e:
            last_exception = e
            logger.warning(f"Request to {url} failed (attempt {attempt + 1}/{max_retries}): {e}")
            if has_next:
                time.sleep(_retry_delay(None, attempt))
            continue

        last_status = response.status_code

        if response.status_code == 429 or response.status_code >= 500:
            logger.warning(
                f"Provider returned {response.status_code} "
                f"(attempt {attempt + 1}/{max_retries})"
            )
            if has_next:
                time.sleep(_retry_delay(response, attempt))
            continue

        if response.status_code >= 400:
            raise error_class(
                f"Provider rejected request with status {response.status_code}: {response.text[:200]}",
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamProtocolError("Provider response is not valid JSON") from e

        if not isinstance(data, dict):
            raise UpstreamProtocolError("Provider response is not a JSON object")
        return data

    error = error_class(
        f"Request to {url} failed after {max_retries} attempts",
        status_code=last_status
    )
    if last_exception is not None:
        raise error from last_exception
    raise error
