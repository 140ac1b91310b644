from __future__ import annotations

import time
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, List, Optional

from ..errors import RemoteError
from ..logging.logger import NullLogger
from ..models import Record, SENTINEL_ID
from .retry import RetryPolicy, call_with_retry


@dataclass
class ResolveStats:
    batches: int = 0
    calls: int = 0
    matched: int = 0
    not_found: int = 0
    filtered_rank: int = 0
    filtered_no_rank: int = 0
    failed: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def _match_window(window: List[Record], items: List[Any]) -> Dict[int, Any]:
    """id(record) -> CatalogItem. Match por UPC; por EAN só quando o item não tinha UPC."""
    by_upc: Dict[str, List[Record]] = {}
    by_ean: Dict[str, List[Record]] = {}
    for r in window:
        if r.has_upc:
            by_upc.setdefault(r.upc, []).append(r)
        if r.ean:
            by_ean.setdefault(r.ean, []).append(r)

    out: Dict[int, Any] = {}
    for item in items:
        if item.identifier_type == "UPC":
            targets = by_upc.get(item.identifier, [])
        else:
            targets = by_upc.get(item.identifier, []) or by_ean.get(item.identifier, [])
        for r in targets:
            # primeiro item devolvido ganha
            out.setdefault(id(r), item)
    return out


def resolve_identifiers(
    records: List[Record],
    provider: Any,
    *,
    batch_size: int = 20,
    rank_filter: Optional[int] = None,
    ignore_no_rank: bool = False,
    retry: RetryPolicy = RetryPolicy(),
    pace_s: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
    logger: Any = None,
) -> ResolveStats:
    logger = logger or NullLogger()
    stats = ResolveStats()
    batch_size = max(1, int(batch_size))

    for start in range(0, len(records), batch_size):
        window = records[start:start + batch_size]
        upcs: List[str] = []
        for r in window:
            if r.has_upc and r.upc not in upcs:
                upcs.append(r.upc)

        if not upcs:
            for r in window:
                r.asin = SENTINEL_ID
                r.rank = 0
                stats.not_found += 1
            continue

        stats.batches += 1
        try:
            items = call_with_retry(
                lambda: provider.search_catalog_items(upcs),
                retry,
                sleep=sleep,
                on_rate_limited=lambda attempt, e: logger.log(
                    "catalog.rate_limited", batch_start=start, attempt=attempt, delay_s=retry.delay_s,
                ),
            )
        except RemoteError as e:
            stats.failed += len(window)
            logger.log("catalog.error", batch_start=start, upcs=upcs, error=str(e), status_code=e.status_code)
            for r in window:
                r.asin = SENTINEL_ID
                r.rank = 0
            items = None
        finally:
            stats.calls += 1
            if pace_s > 0:
                sleep(pace_s)

        if items is None:
            continue

        matches = _match_window(window, items)
        for r in window:
            item = matches.get(id(r))
            if item is None:
                r.asin = SENTINEL_ID
                r.rank = 0
                stats.not_found += 1
                if r.has_upc:
                    logger.log("catalog.not_found", upc=r.upc)
                continue

            r.rank = int(item.rank or 0)
            if ignore_no_rank and r.rank == 0:
                r.asin = SENTINEL_ID
                stats.filtered_no_rank += 1
                logger.log("catalog.filtered", upc=r.upc, asin=item.asin, reason="no_rank")
            elif rank_filter is not None and r.rank > rank_filter:
                r.asin = SENTINEL_ID
                stats.filtered_rank += 1
                logger.log("catalog.filtered", upc=r.upc, asin=item.asin, reason="rank", rank=r.rank, rank_filter=rank_filter)
            else:
                r.asin = item.asin or SENTINEL_ID
                stats.matched += 1
                logger.log("catalog.matched", upc=r.upc, asin=r.asin, rank=r.rank, matched_by=item.identifier_type)

    return stats
