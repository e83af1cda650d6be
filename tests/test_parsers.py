"""Tests for reading uploaded workbooks."""

from datetime import datetime

import pytest

from memorial.services.exchange import SheetData, WorkbookReadError, read_workbook


def test_reads_every_sheet_in_order(make_xlsx) -> None:
    content = make_xlsx(
        {
            "Wars": (["nameEn", "nameAr"], [["First", "أول"]]),
            "Villages": (["nameEn"], [["V"]]),
        }
    )
    sheets = read_workbook(content)
    assert list(sheets) == ["Wars", "Villages"]
    assert sheets["Wars"].headers == ["nameEn", "nameAr"]
    assert sheets["Wars"].rows == [{"nameEn": "First", "nameAr": "أول"}]


def test_native_cell_types_are_kept(make_xlsx) -> None:
    content = make_xlsx(
        {"Wars": (["nameEn", "startDate", "isActive", "age"], [["A", datetime(1982, 6, 6), False, 30]])}
    )
    row = read_workbook(content)["Wars"].rows[0]
    assert row["startDate"] == datetime(1982, 6, 6)
    assert row["isActive"] is False
    assert row["age"] == 30


def test_blank_cells_and_rows_are_dropped(make_xlsx) -> None:
    content = make_xlsx(
        {
            "Wars": (
                ["nameEn", "nameAr"],
                [["  A  ", None], [None, "   "], ["B", "ب"]],
            )
        }
    )
    rows = read_workbook(content)["Wars"].rows
    assert rows == [{"nameEn": "A"}, {"nameEn": "B", "nameAr": "ب"}]


def test_blank_header_cells_keep_column_positions(make_xlsx) -> None:
    content = make_xlsx({"Wars": (["nameEn", None, "nameAr"], [["A", "skip", "ب"]])})
    sheet = read_workbook(content)["Wars"]
    assert sheet.headers == ["nameEn", "nameAr"]
    assert sheet.rows == [{"nameEn": "A", "nameAr": "ب"}]


def test_header_only_sheet_is_empty(make_xlsx) -> None:
    sheet = read_workbook(make_xlsx({"Wars": (["nameEn"], [])}))["Wars"]
    assert sheet.is_empty
    assert sheet.headers == ["nameEn"]


def test_row_limit(make_xlsx) -> None:
    content = make_xlsx({"Wars": (["nameEn"], [[f"W{i}"] for i in range(5)])})
    assert len(read_workbook(content, max_rows=5)["Wars"].rows) == 5
    with pytest.raises(WorkbookReadError, match="more than 4 rows"):
        read_workbook(content, max_rows=4)


def test_row_limit_from_settings(make_xlsx, use_settings) -> None:
    use_settings(max_rows_per_sheet=2)
    content = make_xlsx({"Wars": (["nameEn"], [["A"], ["B"], ["C"]])})
    with pytest.raises(WorkbookReadError):
        read_workbook(content)


def test_unreadable_file() -> None:
    with pytest.raises(WorkbookReadError, match="Could not read workbook"):
        read_workbook(b"this is not a spreadsheet")
    with pytest.raises(ValueError):
        read_workbook(b"")


def test_sheet_from_rows_collects_headers() -> None:
    sheet = SheetData.from_rows("Wars", [{"nameEn": "A"}, {"nameAr": "ب", "nameEn": "B"}])
    assert sheet.headers == ["nameEn", "nameAr"]
    assert not sheet.is_empty
