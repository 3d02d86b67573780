"""Retry with exponential backoff for Kubernetes and registry API calls"""

import logging
import random
import time
from enum import Enum
from typing import Callable, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

NETWORK_HINTS = (
    "connection",
    "timeout",
    "timed out",
    "network",
    "dns",
    "resolve",
    "refused",
    "unreachable",
    "reset",
    "broken pipe",
    "no route to host",
    "temporary failure",
)
SERVER_ERROR_HINTS = ("500", "502", "503", "504", "429", "too many requests")
CLIENT_ERROR_HINTS = ("401", "403", "404", "unauthorized", "forbidden", "not found")


class RetryableErrorType(Enum):
    """How a failed call should be treated"""

    NETWORK = "network"  # could not reach the server
    TEMPORARY = "temporary"  # server-side failure or throttling
    PERMANENT = "permanent"  # retrying gives the same answer


def _http_status(error: Exception) -> Optional[int]:
    """Status code of a kubernetes ApiException (.status) or a requests.HTTPError (.response)."""
    status = getattr(error, "status", None)
    if isinstance(status, int) and status > 0:
        return status
    status_code = getattr(getattr(error, "response", None), "status_code", None)
    if isinstance(status_code, int):
        return status_code
    return None


def is_retryable_error(error: Exception, error_message: str = "") -> Tuple[bool, RetryableErrorType]:
    """Classify an error as (is_retryable, error_type).

    An HTTP status decides when one is available; otherwise the message is
    searched for network, server and client error hints, in that order.
    """
    status = _http_status(error)
    if status is not None:
        if status >= 500 or status == 429:
            return True, RetryableErrorType.TEMPORARY
        return False, RetryableErrorType.PERMANENT

    text = f"{error} {error_message}".lower()
    if any(hint in text for hint in NETWORK_HINTS):
        return True, RetryableErrorType.NETWORK
    if any(hint in text for hint in SERVER_ERROR_HINTS):
        return True, RetryableErrorType.TEMPORARY
    if any(hint in text for hint in CLIENT_ERROR_HINTS):
        return False, RetryableErrorType.PERMANENT

    # bad responses and malformed input do not change between attempts
    if isinstance(error, (ValueError, TypeError, KeyError, AttributeError)):
        return False, RetryableErrorType.PERMANENT
    return True, RetryableErrorType.TEMPORARY


def compute_delay(attempt: int, initial_delay: float, max_delay: float, exponential_base: float, jitter: bool) -> float:
    """Seconds to wait after the zero-based attempt, capped at max_delay, with +/-10% jitter."""
    delay = min(initial_delay * exponential_base ** attempt, max_delay)
    if jitter:
        delay = max(0.1, delay * random.uniform(0.9, 1.1))
    return delay


def retry_operation(
    operation: Callable[[], T],
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    operation_name: str = "operation",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call operation until it succeeds, a permanent error occurs or retries run out.

    Args:
        operation: Zero-argument callable
        max_retries: Retries after the first attempt
        initial_delay: Delay before the first retry, in seconds
        max_delay: Upper bound for any delay
        exponential_base: Growth factor between delays
        jitter: Randomize delays by up to 10%
        operation_name: Used in log messages
        sleep: Sleep function

    Returns:
        Result of the first successful call

    Raises:
        The last error, unchanged
    """
    attempts = max_retries + 1
    for attempt in range(attempts):
        try:
            result = operation()
        except Exception as e:
            retryable, error_type = is_retryable_error(e, getattr(e, "stderr", None) or "")
            if not retryable or attempt + 1 >= attempts:
                logger.debug(f"{operation_name} failed ({error_type.value}) on attempt {attempt + 1}/{attempts}: {e}")
                raise

            delay = compute_delay(attempt, initial_delay, max_delay, exponential_base, jitter)
            logger.warning(f"{operation_name} failed ({error_type.value}), retrying in {delay:.2f}s "
                           f"[attempt {attempt + 1}/{attempts}]")
            sleep(delay)
            continue

        if attempt:
            logger.info(f"{operation_name} succeeded on attempt {attempt + 1}")
        return result
