from __future__ import annotations

import time
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Any, Callable, Dict, List

from ..errors import RemoteError
from ..logging.logger import NullLogger
from ..models import Record, ZERO
from .retry import RetryPolicy, call_with_retry

SHIPPING = Decimal("0")


@dataclass
class FeeStats:
    calls: int = 0
    estimated: int = 0
    not_found: int = 0
    skipped: int = 0
    failed: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def estimate_fees(
    records: List[Record],
    provider: Any,
    *,
    retry: RetryPolicy = RetryPolicy(),
    pace_s: float = 2.0,
    sleep: Callable[[float], None] = time.sleep,
    logger: Any = None,
) -> FeeStats:
    logger = logger or NullLogger()
    stats = FeeStats()

    for r in records:
        if not r.is_resolved:
            r.fees_estimate = ZERO
            stats.skipped += 1
            continue

        asin, price = r.asin, r.offer_price
        try:
            total = call_with_retry(
                lambda: provider.get_fees_estimate(asin, price=price, shipping=SHIPPING),
                retry,
                sleep=sleep,
                on_rate_limited=lambda attempt, e: logger.log(
                    "fees.rate_limited", asin=asin, attempt=attempt, delay_s=retry.delay_s,
                ),
            )
        except RemoteError as e:
            r.fees_estimate = ZERO
            stats.failed += 1
            logger.log("fees.error", asin=asin, error=str(e), status_code=e.status_code)
        else:
            if total is None:
                r.fees_estimate = ZERO
                stats.not_found += 1
                logger.log("fees.not_found", asin=asin)
            else:
                r.fees_estimate = total
                stats.estimated += 1
                logger.log("fees.estimated", asin=asin, offer_price=price, fees_estimate=total)
        finally:
            stats.calls += 1
            if pace_s > 0:
                sleep(pace_s)

    return stats
