"""
Retry predicate for Kubernetes API calls.

Used with tenacity's ``retry_if_exception`` to absorb short transient API
failures. Longer outages are left to the work queue, which requeues the key.
"""
from kubernetes_asyncio.client import ApiException

RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


def is_retryable_k8s_error(exception: BaseException) -> bool:
    """True for API errors worth retrying: timeouts, throttling and 5xx."""
    return isinstance(exception, ApiException) and exception.status in RETRYABLE_STATUS_CODES
