"""Change-token retry wrapper for WAF Classic mutations.

Every mutating WAF Classic call needs a fresh, single-use change token.
Tokens come from one sequence per account and endpoint, so a concurrent
writer can invalidate ours between ``GetChangeToken`` and the mutation.
WAF answers that with ``WAFStaleDataException``; the fix is to fetch a new
token and try again.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Any, TypeVar

from botocore.exceptions import ClientError

from .exceptions import ChangeTokenError, RetryTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

STALE_DATA_CODE = "WAFStaleDataException"
THROTTLING_CODES = frozenset({"ThrottlingException", "Throttling", "TooManyRequestsException"})
RETRYABLE_CODES = THROTTLING_CODES | {STALE_DATA_CODE}

INITIAL_INTERVAL = 0.5
MAX_INTERVAL = 10.0

_locks: dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


def _lock_for(key: str) -> threading.Lock:
    with _locks_guard:
        lock = _locks.get(key)
        if lock is None:
            lock = _locks[key] = threading.Lock()
        return lock


def error_code(error: ClientError) -> str:
    """Return the AWS error code of a ClientError."""
    return str(error.response.get("Error", {}).get("Code", ""))


class WafRetryer:
    """
    Runs WAF mutations with a fresh change token, retrying on conflicts.

    Calls that share a ``lock_key`` are serialized within the process.

    Args:
        client: boto3 ``waf`` or ``waf-regional`` client
        lock_key: Change-token sequence key ("global" or a region)
        timeout: Seconds to keep retrying before giving up
        sleep: Sleep function (injected for testing)
        clock: Monotonic clock (injected for testing)
    """

    def __init__(
        self,
        client: Any,
        lock_key: str,
        timeout: float = 900.0,
        *,
        sleep: Callable[[float], None] | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.client = client
        self.lock_key = lock_key
        self.timeout = timeout
        self._sleep = sleep or time.sleep
        self._clock = clock or time.monotonic

    def retry_with_token(self, fn: Callable[[str], T]) -> T:
        """Call ``fn`` with a fresh change token until it succeeds.

        Args:
            fn: Receives the change token and performs one mutating call.

        Returns:
            Whatever ``fn`` returns.

        Raises:
            ChangeTokenError: If a token cannot be obtained.
            RetryTimeoutError: If conflicts persist past ``timeout``.
            ClientError: Any non-retryable error raised by ``fn``.
        """
        with _lock_for(self.lock_key):
            start = self._clock()
            interval = INITIAL_INTERVAL
            attempts = 0

            while True:
                attempts += 1
                try:
                    token = self._get_token()
                    return fn(token)
                except ClientError as e:
                    code = error_code(e)
                    if code not in RETRYABLE_CODES:
                        raise
                    elapsed = self._clock() - start
                    if elapsed + interval > self.timeout:
                        raise RetryTimeoutError(self.timeout, attempts, e) from e
                    logger.debug(
                        "WAF rejected attempt %d (%s), retrying in %.1fs",
                        attempts,
                        code,
                        interval,
                    )
                    self._sleep(interval)
                    interval = min(interval * 2, MAX_INTERVAL)

    def _get_token(self) -> str:
        try:
            response = self.client.get_change_token()
        except ClientError as e:
            if error_code(e) in THROTTLING_CODES:
                raise
            raise ChangeTokenError("Failed to acquire change token", e) from e
        return str(response["ChangeToken"])
