"""Cell coercion and row parsing for spreadsheet imports."""

import json
from datetime import date, datetime, timedelta, timezone
from typing import Any, Union

from .constants import DATE_FORMATS, MORE_URLS_PATTERN, SPREADSHEET_EPOCH
from .registry import REGISTRY, CollectionSchema, FieldKind, FieldSpec, SchemaRegistry

# One spreadsheet cell as delivered by the workbook reader
CellValue = Union[str, int, float, bool, datetime, date, None]
ImportRow = dict[str, CellValue]


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def lookup_value(row: ImportRow, spec: FieldSpec) -> CellValue:
    """Return the first non-blank value among the field's header keys."""
    for key in spec.header_keys:
        value = row.get(key)
        if not _is_blank(value):
            return value
    return None


def parse_text(value: Any, default: str | None = "") -> str | None:
    """Coerce a cell to text, keeping integral floats free of a trailing '.0'."""
    if _is_blank(value):
        return default
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_number(value: Any, nullable: bool = False) -> int | float | None:
    """Coerce a cell to a number.

    Missing or unparseable values become None for nullable fields
    (coordinates) and 0 otherwise (counts).
    """
    fallback = None if nullable else 0
    if isinstance(value, bool) or _is_blank(value):
        return fallback
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            return fallback
    return fallback


def _parse_date_text(text: str) -> datetime | None:
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def parse_date(value: Any) -> datetime | date | None:
    """Coerce a cell to a date.

    Native dates pass through, text goes through ISO 8601 and then a list of
    common formats, numbers are spreadsheet serials. Anything unparseable
    becomes None.
    """
    if isinstance(value, bool) or _is_blank(value):
        return None
    if isinstance(value, (datetime, date)):
        return value
    if isinstance(value, (int, float)):
        try:
            return SPREADSHEET_EPOCH + timedelta(days=value)
        except (OverflowError, ValueError):
            return None
    if isinstance(value, str):
        return _parse_date_text(value.strip())
    return None


def parse_list(value: Any) -> list[Any]:
    """Coerce a cell to a list of media references or ids.

    Accepts a list, a JSON array, or text delimited by newlines (by commas
    when the text is a single line). Malformed JSON arrays become an empty
    list.
    """
    if _is_blank(value):
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    if not isinstance(value, str):
        return []

    text = value.strip()
    if text.startswith("["):
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            return []
        return parsed if isinstance(parsed, list) else []

    # Exported lists are one URL per line; URLs may themselves contain commas
    parts = text.splitlines() if "\n" in text else text.split(",")
    items = (item.strip() for item in parts)
    return [item for item in items if item and not MORE_URLS_PATTERN.match(item)]


def parse_object(value: Any) -> Any:
    """Coerce a cell holding a nested object, decoding JSON text when possible."""
    if _is_blank(value):
        return None
    if isinstance(value, str):
        text = value.strip()
        if text[:1] in ("{", "["):
            try:
                return json.loads(text)
            except json.JSONDecodeError:
                return text
        return text
    return value


def parse_flag(value: Any, default: bool) -> bool:
    """Coerce a cell to a boolean that only an explicit opposite value flips."""
    if isinstance(value, str):
        value = value.strip().lower()
    if default:
        return value is not False and value != "false"
    return value is True or value == "true"


def parse_field(spec: FieldSpec, row: ImportRow) -> Any:
    """Parse one field of a row according to its kind."""
    if spec.kind is FieldKind.FLAG:
        # Flags read the canonical column only
        return parse_flag(row.get(spec.name), spec.default)

    value = lookup_value(row, spec)

    if spec.kind in (FieldKind.TEXT, FieldKind.URL):
        return parse_text(value, spec.default)
    if spec.kind is FieldKind.REFERENCE:
        return parse_text(value, None)
    if spec.kind is FieldKind.NUMBER:
        return parse_number(value, nullable=spec.nullable)
    if spec.kind is FieldKind.DATE:
        return parse_date(value)
    if spec.kind in (FieldKind.MEDIA, FieldKind.ID_LIST):
        return parse_list(value)
    if spec.kind is FieldKind.OBJECT:
        return parse_object(value)
    raise ValueError(f"Unhandled field kind: {spec.kind}")


def parse_record(schema: CollectionSchema, row: ImportRow) -> dict[str, Any]:
    """Convert a row to the normalized record of a known collection."""
    return {spec.name: parse_field(spec, row) for spec in schema.fields}


def parse_row(
    collection_name: str,
    row: ImportRow,
    registry: SchemaRegistry = REGISTRY,
) -> dict[str, Any]:
    """Convert a spreadsheet row to a normalized record.

    Unknown collections yield an empty record.
    """
    schema = registry.get(collection_name)
    if schema is None:
        return {}
    return parse_record(schema, row)


def to_store_value(value: Any) -> Any:
    """Convert dates to the store's timestamp form, walking lists and dicts.

    Timestamps are stored as naive UTC datetimes, which is what MongoDB
    hands back on read.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, list):
        return [to_store_value(item) for item in value]
    if isinstance(value, tuple):
        return [to_store_value(item) for item in value]
    if isinstance(value, dict):
        return {key: to_store_value(item) for key, item in value.items()}
    return value
