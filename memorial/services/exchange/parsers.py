"""Workbook reading for spreadsheet imports."""

import io
import logging
import zipfile
from dataclasses import dataclass, field
from typing import Any

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from memorial.config import settings

from .errors import WorkbookReadError

logger = logging.getLogger(__name__)


@dataclass
class SheetData:
    """Header row and data rows of one worksheet.

    Rows map header text to the native cell value. Empty cells are omitted.
    """

    name: str
    headers: list[str] = field(default_factory=list)
    rows: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_rows(cls, name: str, rows: list[dict[str, Any]]) -> "SheetData":
        """Build a sheet from row dicts, deriving headers in first-seen order."""
        headers: list[str] = []
        for row in rows:
            for key in row:
                if key not in headers:
                    headers.append(key)
        return cls(name=name, headers=headers, rows=list(rows))

    @property
    def is_empty(self) -> bool:
        return not self.rows


# Sheet name -> sheet contents, in workbook order
Workbook = dict[str, SheetData]


def _clean_cell(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def read_workbook(file_content: bytes, max_rows: int | None = None) -> Workbook:
    """Read every worksheet of an XLSX file.

    Cell values keep their native types (numbers, booleans, datetimes) so
    the row parser can coerce them per field.

    Args:
        file_content: Raw XLSX file bytes.
        max_rows: Maximum data rows per sheet. Defaults to settings.

    Returns:
        Sheets keyed by sheet name, in workbook order.

    Raises:
        WorkbookReadError: If the file is not a readable workbook or a sheet
            has more rows than allowed.
    """
    limit = max_rows if max_rows is not None else settings.exchange.max_rows_per_sheet

    try:
        wb = load_workbook(filename=io.BytesIO(file_content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
        raise WorkbookReadError(f"Could not read workbook: {e}") from e

    sheets: Workbook = {}
    try:
        for ws in wb.worksheets:
            sheets[ws.title] = _read_sheet(ws, limit)
    finally:
        wb.close()

    logger.debug("Read workbook with sheets: %s", list(sheets))
    return sheets


def _read_sheet(ws: Any, limit: int) -> SheetData:
    sheet = SheetData(name=ws.title)
    row_iter = ws.iter_rows(values_only=True)

    try:
        raw_headers = next(row_iter)
    except StopIteration:
        return sheet

    # Keep column positions so blank header cells don't shift the data
    columns = [
        (j, str(h).strip())
        for j, h in enumerate(raw_headers)
        if h is not None and str(h).strip()
    ]
    sheet.headers = [header for _, header in columns]

    for row_values in row_iter:
        row: dict[str, Any] = {}
        for j, header in columns:
            value = _clean_cell(row_values[j]) if j < len(row_values) else None
            if value is not None:
                row[header] = value
        if not row:
            continue
        if len(sheet.rows) >= limit:
            raise WorkbookReadError(
                f"Sheet '{ws.title}' has more than {limit} rows"
            )
        sheet.rows.append(row)

    return sheet
