"""
Retry helpers shared by the provider adapters.

Classifies backend errors as retryable (overload, rate limit, network) and
computes exponential backoff with jitter.
"""

import random
from typing import Iterable, Optional

import httpx
from anthropic import APIStatusError, APIError, APIConnectionError, APITimeoutError

RETRYABLE_ERROR_TYPES = ['overloaded_error', 'rate_limit_error', 'server_error']
RETRYABLE_STATUS_CODES = [429, 500, 502, 503, 504, 529]
RETRYABLE_MESSAGE_MARKERS = [
    'overload', 'rate_limit', 'rate limit', 'resource_exhausted', 'resource exhausted',
    '429', '503', '529', 'capacity', 'unavailable', 'deadline',
    'connection', 'timeout', 'network', 'dns', 'socket',
]


def is_retryable_error(error: Exception, extra_markers: Optional[Iterable[str]] = None) -> bool:
    """Check if an error is retryable (overload, rate limit, network issues, etc.)"""
    # Network/connection errors are always retryable
    if isinstance(error, (APIConnectionError, APITimeoutError)):
        return True

    if isinstance(error, (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError)):
        return True

    if isinstance(error, (APIStatusError, APIError)):
        body = getattr(error, 'body', None)
        if isinstance(body, dict):
            error_type = (body.get('error') or {}).get('type', '')
            if error_type:
                return error_type in RETRYABLE_ERROR_TYPES
        status_code = getattr(error, 'status_code', None)
        if status_code is not None:
            return status_code in RETRYABLE_STATUS_CODES

    # Fallback: google-api-core and other SDKs expose a numeric code
    code = getattr(error, 'code', None)
    if isinstance(code, int) and code in RETRYABLE_STATUS_CODES:
        return True

    error_str = str(error).lower()
    markers = list(RETRYABLE_MESSAGE_MARKERS) + list(extra_markers or [])
    return any(marker in error_str for marker in markers)


def calculate_retry_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Calculate delay with exponential backoff and jitter (0-25% of delay)"""
    delay = min(base_delay * (2 ** attempt), max_delay)
    jitter = delay * random.uniform(0, 0.25)
    return delay + jitter
