from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

SENTINEL_ID = "0"
UNKNOWN_NAME = "Unknown"
ZERO = Decimal("0")


@dataclass
class Record:
    """Uma linha do CSV de entrada. Criado pelo ingestor e mutado in-place por cada etapa."""
    upc: str = SENTINEL_ID
    item_no: str = SENTINEL_ID
    cost_text: str = SENTINEL_ID
    cost: Decimal = ZERO
    item_name: str = UNKNOWN_NAME
    status: Optional[str] = None
    company: Optional[str] = None
    ean: Optional[str] = None

    asin: str = SENTINEL_ID
    rank: int = 0
    offer_price: Decimal = ZERO
    fees_estimate: Decimal = ZERO
    profit: Decimal = ZERO

    @property
    def has_upc(self) -> bool:
        return self.upc != SENTINEL_ID

    @property
    def is_resolved(self) -> bool:
        return bool(self.asin) and self.asin != SENTINEL_ID

    def reset_enrichment(self) -> None:
        self.asin = SENTINEL_ID
        self.rank = 0
        self.offer_price = ZERO
        self.fees_estimate = ZERO
        self.profit = ZERO
