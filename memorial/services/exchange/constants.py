"""Constants for spreadsheet data exchange."""

import re
from datetime import datetime

# Spreadsheet date serials count days from this epoch (1900 leap-year bug included)
SPREADSHEET_EPOCH = datetime(1899, 12, 30)

# Date text formats tried after ISO 8601, in order
DATE_FORMATS = (
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M:%S",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%d %B %Y",
    "%d %b %Y",
    "%B %d, %Y",
    "%b %d, %Y",
)

# Header row plus 1-based spreadsheet numbering
ROW_NUMBER_OFFSET = 2

# Columns every export carries around the schema fields
LEADING_SYSTEM_COLUMNS = ("id",)
TRAILING_SYSTEM_COLUMNS = ("createdAt", "updatedAt")

IMPORT_ID_PREFIX = "import"

TRUNCATION_MARKER = "...[TRUNCATED]"
MORE_URLS_TEMPLATE = "...[{count} more URLs]"
MORE_URLS_PATTERN = re.compile(r"^\.\.\.\[\d+ more URLs\]$")

EMPTY_SHEET_DETAILS = "Sheet is empty"

MEDIA_SHEET_NAME = "Media"
MEDIA_SHEET_HEADERS = ["Record Name", "Media Type", "URL", "File Name"]

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
