import csv
from decimal import Decimal

import pytest

from spresearch.errors import ReportWriteError
from spresearch.io.report import ProfitFilter, report_columns, write_report
from spresearch.models import Record


def _rec(upc, profit, asin="B1", item_no="I1", **kw):
    return Record(upc=upc, item_no=item_no, asin=asin, profit=Decimal(profit), **kw)


def _read(path):
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))


def test_profit_filter_directions():
    assert ProfitFilter(Decimal("1"), "at_least").passes(Decimal("1"))
    assert not ProfitFilter(Decimal("1"), "at_least").passes(Decimal("0.99"))
    assert ProfitFilter(Decimal("1"), "at_most").passes(Decimal("-3"))
    assert not ProfitFilter(Decimal("1"), "at_most").passes(Decimal("1.01"))
    with pytest.raises(ValueError):
        ProfitFilter(Decimal("1"), "sideways").passes(Decimal("0"))  # type: ignore[arg-type]


def test_report_keeps_passing_rows_in_input_order(tmp_path):
    out = tmp_path / "Research.csv"
    records = [_rec("1", "15.49"), _rec("2", "0.50"), _rec("3", "2")]
    res = write_report(records, str(out), ProfitFilter())
    rows = _read(out)
    assert [r["UPC"] for r in rows] == ["1", "3"]
    assert res.rows == 2
    assert res.considered == 3


def test_placeholders_are_excluded(tmp_path):
    out = tmp_path / "Research.csv"
    records = [_rec("1", "5", asin="0"), _rec("0", "5"), _rec("3", "5", item_no="0"), _rec("4", "5")]
    write_report(records, str(out), ProfitFilter())
    assert [r["UPC"] for r in _read(out)] == ["4"]


def test_at_most_keeps_losses(tmp_path):
    out = tmp_path / "Research.csv"
    write_report([_rec("1", "-4"), _rec("2", "8")], str(out), ProfitFilter(Decimal("0"), "at_most"))
    assert [r["UPC"] for r in _read(out)] == ["1"]


def test_header_and_formatting(tmp_path):
    out = tmp_path / "Research.csv"
    r = Record(upc="012345678905", item_no="ABC1", asin="B000TEST1", item_name="Widget", rank=500,
               offer_price=Decimal("29.99"), fees_estimate=Decimal("4.50"), cost=Decimal("10.00"),
               profit=Decimal("15.4899"))
    write_report([r], str(out), ProfitFilter())
    with open(out, newline="", encoding="utf-8") as f:
        header = next(csv.reader(f))
    assert header == ["Item No.", "UPC", "ASIN", "Company", "Item Name", "SalesRank",
                      "ListPrice", "Fees", "Cost", "Profit"]
    [row] = _read(out)
    assert row["Company"] == ""
    assert row["SalesRank"] == "500"
    assert row["ListPrice"] == "29.99"
    assert row["Profit"] == "15.49"


def test_optional_columns_can_be_dropped(tmp_path):
    out = tmp_path / "Research.csv"
    write_report([], str(out), ProfitFilter(), include_company=False, include_name=False)
    assert "Company" not in [t for t, _ in report_columns(include_company=False)]
    with open(out, newline="", encoding="utf-8") as f:
        assert next(csv.reader(f)) == ["Item No.", "UPC", "ASIN", "SalesRank", "ListPrice", "Fees", "Cost", "Profit"]


def test_unwritable_path_raises(tmp_path):
    with pytest.raises(ReportWriteError):
        write_report([], str(tmp_path), ProfitFilter())
    with pytest.raises(ReportWriteError):
        write_report([], str(tmp_path / "missing" / "Research.csv"), ProfitFilter())
