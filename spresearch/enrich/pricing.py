from __future__ import annotations

import time
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from ..errors import RemoteError
from ..logging.logger import NullLogger
from ..models import Record, ZERO
from .retry import RetryPolicy, call_with_retry


@dataclass
class PriceStats:
    calls: int = 0
    priced: int = 0
    no_offers: int = 0
    skipped: int = 0
    failed: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def lowest_price(prices: List[Decimal]) -> Optional[Decimal]:
    low: Optional[Decimal] = None
    for p in prices:
        if p is None:
            continue
        if (low is None) or (p < low):
            low = p
    return low


def fetch_offer_prices(
    records: List[Record],
    provider: Any,
    *,
    retry: RetryPolicy = RetryPolicy(),
    pace_s: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
    logger: Any = None,
) -> PriceStats:
    logger = logger or NullLogger()
    stats = PriceStats()

    for r in records:
        if not r.is_resolved:
            r.offer_price = ZERO
            stats.skipped += 1
            continue

        asin = r.asin
        try:
            prices = call_with_retry(
                lambda: provider.get_item_offers(asin),
                retry,
                sleep=sleep,
                on_rate_limited=lambda attempt, e: logger.log(
                    "offers.rate_limited", asin=asin, attempt=attempt, delay_s=retry.delay_s,
                ),
            )
        except RemoteError as e:
            r.offer_price = ZERO
            stats.failed += 1
            logger.log("offers.error", asin=asin, error=str(e), status_code=e.status_code)
        else:
            low = lowest_price(prices)
            if low is None:
                r.offer_price = ZERO
                stats.no_offers += 1
                logger.log("offers.not_found", asin=asin)
            else:
                r.offer_price = low
                stats.priced += 1
                logger.log("offers.priced", asin=asin, offer_price=low, candidates=len(prices))
        finally:
            stats.calls += 1
            if pace_s > 0:
                sleep(pace_s)

    return stats
