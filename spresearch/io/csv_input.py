from __future__ import annotations

import csv
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Set, Tuple

from ..errors import InputFileError
from ..models import Record, SENTINEL_ID, UNKNOWN_NAME
from ..enrich.profit import parse_cost

BOM = "\ufeff"
# BOM UTF-8 lido pelo fallback latin-1
LATIN1_BOM = "\xef\xbb\xbf"
ENCODINGS = ("utf-8-sig", "latin-1")

# campo semântico -> sinónimos aceites no cabeçalho (ordem = prioridade)
HEADER_SYNONYMS: Dict[str, Tuple[str, ...]] = {
    "upc": ("UPC", "Upc"),
    "item_no": ("Item No.", "Item Number", "SKU", "Number"),
    "cost": ("FIRST_PricePerPiece", "Price", "Price Per Piece", "sale_price"),
    "item_name": ("Item Name",),
    "status": ("Status",),
    "company": ("Company", "COMPANY"),
}


@dataclass
class IngestResult:
    records: List[Record]
    columns: Dict[int, str]
    rows_read: int = 0
    skipped_ignored: int = 0
    skipped_blank: int = 0
    missing_fields: List[str] = field(default_factory=list)


def normalize_header(text: str) -> str:
    for mark in (BOM, LATIN1_BOM):
        if text.startswith(mark):
            text = text[len(mark):]
            break
    return text.strip()


def map_headers(header_row: Sequence[str], synonyms: Mapping[str, Sequence[str]] = HEADER_SYNONYMS) -> Dict[int, str]:
    """Índice de coluna -> campo. Primeiro sinónimo encontrado ganha; colunas sem match são ignoradas."""
    headers = [normalize_header(h) for h in header_row]
    out: Dict[int, str] = {}
    for fld, options in synonyms.items():
        for option in options:
            wanted = normalize_header(option)
            idx = next((i for i, h in enumerate(headers) if h == wanted and i not in out), None)
            if idx is not None:
                out[idx] = fld
                break
    return out


def parse_ignore_list(text: Optional[str]) -> Set[str]:
    if not text:
        return set()
    return {part.strip().lower() for part in text.split(",") if part.strip()}


def _cell(row: Sequence[str], idx: Optional[int]) -> str:
    if idx is None or idx >= len(row):
        return ""
    return (row[idx] or "").strip()


def _is_ean(code: str) -> bool:
    return len(code) == 13 and code.isdigit()


def _ingest_rows(
    rows: Iterator[List[str]],
    synonyms: Mapping[str, Sequence[str]],
    ignore: Set[str],
) -> IngestResult:
    header = next(rows, None)
    if header is None:
        return IngestResult(records=[], columns={}, missing_fields=list(synonyms))

    columns = map_headers(header, synonyms)
    index_of = {fld: idx for idx, fld in columns.items()}

    result = IngestResult(
        records=[],
        columns=columns,
        missing_fields=[f for f in synonyms if f not in index_of],
    )

    for row in rows:
        if not any((c or "").strip() for c in row):
            result.skipped_blank += 1
            continue
        result.rows_read += 1

        company = _cell(row, index_of.get("company")) or None
        if ignore and company and company.lower() in ignore:
            result.skipped_ignored += 1
            continue

        upc = _cell(row, index_of.get("upc")) or SENTINEL_ID
        cost_text = _cell(row, index_of.get("cost")) or SENTINEL_ID
        result.records.append(
            Record(
                upc=upc,
                item_no=_cell(row, index_of.get("item_no")) or SENTINEL_ID,
                cost_text=cost_text,
                cost=parse_cost(cost_text),
                item_name=_cell(row, index_of.get("item_name")) or UNKNOWN_NAME,
                status=_cell(row, index_of.get("status")) or None,
                company=company,
                ean=upc if _is_ean(upc) else None,
            )
        )

    return result


def ingest_csv(
    path: str,
    synonyms: Mapping[str, Sequence[str]] = HEADER_SYNONYMS,
    ignore_companies: Iterable[str] = (),
) -> IngestResult:
    p = Path(path)
    if not p.exists():
        raise InputFileError(f"CSV file not found: {path}")
    if not p.is_file():
        raise InputFileError(f"CSV path is not a file: {path}")

    ignore = {c.strip().lower() for c in ignore_companies if c and c.strip()}

    # linhas lidas em streaming; um erro de decode recomeça do início com o próximo encoding
    last_err: Optional[Exception] = None
    for encoding in ENCODINGS:
        try:
            with p.open("r", encoding=encoding, newline="") as f:
                return _ingest_rows(csv.reader(f, delimiter=","), synonyms, ignore)
        except UnicodeDecodeError as e:
            last_err = e
            continue
        except (OSError, csv.Error) as e:
            raise InputFileError(f"Could not read CSV {path}: {e}") from e
    raise InputFileError(f"Could not decode CSV {path}") from last_err


def read_records(
    path: str,
    synonyms: Mapping[str, Sequence[str]] = HEADER_SYNONYMS,
    ignore_companies: Iterable[str] = (),
) -> List[Record]:
    return ingest_csv(path, synonyms=synonyms, ignore_companies=ignore_companies).records
