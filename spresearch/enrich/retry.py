from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from ..errors import RateLimitedError, RetriesExhaustedError

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_tries: int = 3
    delay_s: float = 3.0


def call_with_retry(
    fn: Callable[[], T],
    policy: RetryPolicy = RetryPolicy(),
    *,
    sleep: Callable[[float], None] = time.sleep,
    on_rate_limited: Optional[Callable[[int, RateLimitedError], None]] = None,
) -> T:
    """
    Só 429 é repetido (delay fixo, max_tries tentativas no total).
    Qualquer outro RemoteError sobe logo, sem sleep.
    """
    last_err: Optional[RateLimitedError] = None
    for attempt in range(1, policy.max_tries + 1):
        try:
            return fn()
        except RateLimitedError as e:
            last_err = e
            if on_rate_limited is not None:
                on_rate_limited(attempt, e)
            if attempt < policy.max_tries:
                sleep(policy.delay_s)
    raise RetriesExhaustedError(
        f"Rate limited on all {policy.max_tries} attempts",
        status_code=last_err.status_code if last_err else None,
    ) from last_err
