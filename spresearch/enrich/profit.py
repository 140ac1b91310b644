from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from ..models import Record, ZERO

_NON_NUMERIC_RE = re.compile(r"[^\d.\-]")


def parse_cost(text: Optional[str]) -> Decimal:
    """'$1,234.50' -> Decimal('1234.50'). Texto sem número -> 0."""
    if text is None:
        return ZERO
    cleaned = _NON_NUMERIC_RE.sub("", str(text))
    if not cleaned:
        return ZERO
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return ZERO
    if not value.is_finite():
        return ZERO
    return value


def compute_profit(offer_price: Decimal, fees_estimate: Decimal, cost: Decimal) -> Decimal:
    if not offer_price or not fees_estimate:
        return ZERO
    return offer_price - (fees_estimate + cost)


def calculate_profits(records: List[Record]) -> List[Record]:
    for r in records:
        r.cost = parse_cost(r.cost_text)
        if not r.is_resolved:
            # ASIN placeholder: sem rank, preço, fees nem profit
            r.reset_enrichment()
            continue
        r.profit = compute_profit(r.offer_price, r.fees_estimate, r.cost)
    return records
