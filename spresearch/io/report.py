from __future__ import annotations

import csv
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from pathlib import Path
from typing import Any, Dict, List, Literal, Tuple

from ..errors import ReportWriteError
from ..models import Record, SENTINEL_ID

Direction = Literal["at_least", "at_most"]

# (título no CSV, atributo do Record)
REPORT_COLUMNS: List[Tuple[str, str]] = [
    ("Item No.", "item_no"),
    ("UPC", "upc"),
    ("ASIN", "asin"),
    ("Company", "company"),
    ("Item Name", "item_name"),
    ("SalesRank", "rank"),
    ("ListPrice", "offer_price"),
    ("Fees", "fees_estimate"),
    ("Cost", "cost"),
    ("Profit", "profit"),
]

CENT = Decimal("0.01")


@dataclass(frozen=True)
class ProfitFilter:
    threshold: Decimal = Decimal("1")
    direction: Direction = "at_least"

    def passes(self, profit: Decimal) -> bool:
        if self.direction == "at_least":
            return profit >= self.threshold
        if self.direction == "at_most":
            return profit <= self.threshold
        raise ValueError(f"Unknown profit filter direction: {self.direction!r}")


@dataclass(frozen=True)
class ReportResult:
    path: Path
    rows: int
    considered: int


def has_placeholders(r: Record) -> bool:
    return SENTINEL_ID in (r.asin, r.upc, r.item_no)


def select_report_rows(records: List[Record], profit_filter: ProfitFilter) -> List[Record]:
    kept = [r for r in records if profit_filter.passes(r.profit)]
    return [r for r in kept if not has_placeholders(r)]


def report_columns(include_company: bool = True, include_name: bool = True) -> List[Tuple[str, str]]:
    cols = []
    for title, attr in REPORT_COLUMNS:
        if attr == "company" and not include_company:
            continue
        if attr == "item_name" and not include_name:
            continue
        cols.append((title, attr))
    return cols


def _fmt(v: Any, attr: str) -> str:
    if v is None:
        return ""
    if isinstance(v, Decimal):
        if attr == "profit":
            v = v.quantize(CENT, rounding=ROUND_HALF_UP)
        return format(v, "f")
    return str(v)


def to_row(r: Record, columns: List[Tuple[str, str]]) -> Dict[str, str]:
    return {title: _fmt(getattr(r, attr), attr) for title, attr in columns}


def write_report(
    records: List[Record],
    path: str,
    profit_filter: ProfitFilter,
    *,
    include_company: bool = True,
    include_name: bool = True,
) -> ReportResult:
    rows = select_report_rows(records, profit_filter)
    columns = report_columns(include_company=include_company, include_name=include_name)
    p = Path(path)
    if p.is_dir():
        raise ReportWriteError(f"Report path is a directory: {path}")
    try:
        with p.open("w", encoding="utf-8", newline="") as f:
            w = csv.DictWriter(f, fieldnames=[t for t, _ in columns])
            w.writeheader()
            for r in rows:
                w.writerow(to_row(r, columns))
    except OSError as e:
        raise ReportWriteError(f"Could not write report {path}: {e}") from e
    return ReportResult(path=p, rows=len(rows), considered=len(records))
