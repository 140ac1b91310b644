from decimal import Decimal

import pytest

from spresearch.errors import InputFileError, FileError
from spresearch.io.csv_input import (
    HEADER_SYNONYMS,
    ingest_csv,
    map_headers,
    normalize_header,
    parse_ignore_list,
    read_records,
)


def test_normalize_header_strips_bom_and_whitespace():
    assert normalize_header("\ufeffUPC ") == "UPC"
    assert normalize_header("  Item No.\t") == "Item No."


@pytest.mark.parametrize(
    "header,expected",
    [
        (["UPC", "SKU", "Price"], {0: "upc", 1: "item_no", 2: "cost"}),
        (["Price Per Piece", "Number", "Upc"], {2: "upc", 1: "item_no", 0: "cost"}),
        (["sale_price", "Item Number", "COMPANY", "Upc"], {3: "upc", 1: "item_no", 0: "cost", 2: "company"}),
    ],
)
def test_map_headers_any_synonym_any_position(header, expected):
    assert map_headers(header) == expected


def test_map_headers_first_synonym_wins():
    # "Item No." vem antes de "SKU" na lista de sinónimos
    cols = map_headers(["SKU", "Item No.", "UPC"])
    assert cols[1] == "item_no"
    assert 0 not in cols


def test_map_headers_is_case_sensitive_and_drops_unknown():
    cols = map_headers(["upc", "Description", "Price"])
    assert cols == {2: "cost"}


def test_read_records_projects_rows(write_csv):
    path = write_csv(
        "\ufeffUPC,Description,SKU,Price,Item Name,Status,Company\n"
        "012345678905,Widget,ABC1,$10.00,Blue widget,Open,Acme\n"
    )
    [r] = read_records(path)
    assert r.upc == "012345678905"
    assert r.item_no == "ABC1"
    assert r.cost_text == "$10.00"
    assert r.cost == Decimal("10.00")
    assert r.item_name == "Blue widget"
    assert r.status == "Open"
    assert r.company == "Acme"
    assert not hasattr(r, "description")


def test_blank_values_get_defaults(write_csv):
    path = write_csv("UPC,SKU,Price,Item Name,Status\n ,  ,,,Open\n")
    [r] = read_records(path)
    assert r.upc == "0"
    assert r.item_no == "0"
    assert r.cost_text == "0"
    assert r.cost == Decimal("0")
    assert r.item_name == "Unknown"
    assert r.asin == "0"


def test_missing_columns_default(write_csv):
    path = write_csv("Foo,Bar\n1,2\n")
    [r] = read_records(path)
    assert (r.upc, r.item_no, r.item_name) == ("0", "0", "Unknown")


def test_short_rows_do_not_fail(write_csv):
    path = write_csv("UPC,SKU,Price\n111\n")
    [r] = read_records(path)
    assert r.upc == "111"
    assert r.item_no == "0"


def test_header_only_gives_empty_list(write_csv):
    assert read_records(write_csv("UPC,SKU,Price\n")) == []


def test_empty_file_gives_empty_list(write_csv):
    assert read_records(write_csv("")) == []


def test_blank_lines_are_skipped(write_csv):
    res = ingest_csv(write_csv("UPC,SKU,Price\n1,a,1\n,,\n2,b,2\n"))
    assert [r.upc for r in res.records] == ["1", "2"]
    assert res.skipped_blank == 1


def test_order_is_preserved(write_csv):
    rows = "\n".join(f"{i},S{i},{i}" for i in range(30, 0, -1))
    records = read_records(write_csv("UPC,SKU,Price\n" + rows + "\n"))
    assert [r.upc for r in records] == [str(i) for i in range(30, 0, -1)]


def test_company_ignore_list_is_case_insensitive(write_csv):
    path = write_csv(
        "UPC,SKU,Price,Company\n"
        "1,a,1,Youtooz\n"
        "2,b,2,Acme\n"
        "3,c,3, GAMAGO \n"
    )
    res = ingest_csv(path, ignore_companies=parse_ignore_list("youtooz, Gamago"))
    assert [r.upc for r in res.records] == ["2"]
    assert res.skipped_ignored == 2


def test_ignore_list_without_company_column_keeps_rows(write_csv):
    path = write_csv("UPC,SKU,Price\n1,a,1\n")
    assert len(read_records(path, ignore_companies={"acme"})) == 1


def test_parse_ignore_list():
    assert parse_ignore_list(None) == set()
    assert parse_ignore_list("  ") == set()
    assert parse_ignore_list("Acme, ,FOO") == {"acme", "foo"}


def test_ean_code_is_stored_for_fallback_matching(write_csv):
    records = read_records(write_csv("UPC,SKU,Price\n4006381333931,a,1\n012345678905,b,1\n"))
    assert records[0].ean == "4006381333931"
    assert records[1].ean is None


def test_latin1_file_is_read(write_csv):
    path = write_csv("UPC,SKU,Price,Item Name\n1,a,1,Caf\xe9\n", encoding="latin-1")
    [r] = read_records(path)
    assert r.item_name == "Caf\xe9"


def test_missing_file_raises(tmp_path):
    with pytest.raises(InputFileError):
        read_records(str(tmp_path / "nope.csv"))


def test_directory_raises_file_error(tmp_path):
    with pytest.raises(FileError):
        read_records(str(tmp_path))


def test_missing_fields_are_reported(write_csv):
    res = ingest_csv(write_csv("UPC,Price\n1,2\n"))
    assert "item_no" in res.missing_fields
    assert "upc" not in res.missing_fields
    assert set(res.missing_fields) <= set(HEADER_SYNONYMS)


def test_bom_file_with_latin1_bytes_keeps_first_column(tmp_path):
    p = tmp_path / "excel.csv"
    p.write_bytes(b"\xef\xbb\xbfUPC,SKU,Price,Item Name\n012345678905,A1,$10,Caf\xe9\n")
    [r] = read_records(str(p))
    assert (r.upc, r.item_no) == ("012345678905", "A1")
    assert r.item_name == "Caf\xe9"


def test_normalize_header_strips_bom_read_as_latin1():
    assert normalize_header("\xef\xbb\xbfUPC") == "UPC"


def test_late_decode_error_restarts_without_duplicates(tmp_path):
    rows = "".join(f"{i},S{i},{i}\n" for i in range(1, 501))
    p = tmp_path / "late.csv"
    p.write_bytes(("UPC,SKU,Price,Item Name\n" + rows).encode("utf-8") + b"999,S999,1,Caf\xe9\n")
    res = ingest_csv(str(p))
    assert len(res.records) == 501
    assert res.rows_read == 501
    assert [r.upc for r in res.records[:2]] == ["1", "2"]
    assert res.records[-1].item_name == "Caf\xe9"
