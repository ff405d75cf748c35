"""
Retry policy for per-alias secret fetches.

Exponential backoff without jitter:

    attempt 1 fails -> wait retry_delay * 2**0 -> attempt 2
    attempt 2 fails -> wait retry_delay * 2**1 -> attempt 3
    ...

``max_retries = 0`` means exactly one attempt. The attempt loop itself is
driven by tenacity (an explicit loop, so high retry counts never grow the
stack); this module only decides *whether* and *how long*.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass

from tenacity import RetryCallState, Retrying, retry_if_exception_type, stop_after_attempt


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded exponential backoff.

    Attributes:
        max_retries: Retries after the first attempt (total attempts = max_retries + 1)
        retry_delay_seconds: Base delay before the first retry
    """

    max_retries: int = 3
    retry_delay_seconds: float = 1.0

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def should_retry(self, attempt: int) -> bool:
        """Whether another attempt follows the (1-based) attempt that just failed."""
        return attempt <= self.max_retries

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the (1-based) failed attempt before the next one."""
        return self.retry_delay_seconds * 2 ** (attempt - 1)

    def _wait(self, retry_state: RetryCallState) -> float:
        return self.delay_for(retry_state.attempt_number)

    def retrying(
        self,
        sleep: Callable[[float], None] = time.sleep,
        before_sleep: Callable[[RetryCallState], None] | None = None,
    ) -> Retrying:
        """
        Build a tenacity controller implementing this policy.

        Exhaustion raises ``tenacity.RetryError`` whose ``last_attempt`` holds
        the final failure.

        Args:
            sleep: Suspension used between attempts (injectable for tests)
            before_sleep: Hook called before each backoff (used for logging)
        """
        return Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait,
            retry=retry_if_exception_type(Exception),
            sleep=sleep,
            before_sleep=before_sleep,
            reraise=False,
        )
