"""Export service for writing content collections to XLSX workbooks."""

import io
import json
import logging
from collections.abc import Iterable
from datetime import date, datetime, timezone
from typing import Any

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from memorial.config import settings
from memorial.database import DocumentStore
from memorial.services.exchange.constants import (
    MEDIA_SHEET_HEADERS,
    MEDIA_SHEET_NAME,
    MORE_URLS_TEMPLATE,
    TRUNCATION_MARKER,
)
from memorial.services.exchange.converters import to_store_value
from memorial.services.exchange.errors import RecordNotFoundError
from memorial.services.exchange.registry import (
    REGISTRY,
    CollectionSchema,
    FieldKind,
    SchemaRegistry,
)

logger = logging.getLogger(__name__)

# Display labels and fallback file names for the media export
_MEDIA_LABELS = {
    "mainIcon": ("Main Icon", "main-icon"),
    "mainImage": ("Main Image", "main-image"),
    "qrCode": ("QR Code", "qr-code.png"),
    "photos": ("Photo", "photo"),
    "videos": ("Video", "video"),
    "photos360": ("360 Photo", "photo360"),
}


def generate_filename(kind: str) -> str:
    """Generate a standardized download filename for an export."""
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return f"memorial_{kind}_{timestamp}.xlsx"


def truncate_text(text: str, limit: int) -> str:
    """Cut text so that it plus the truncation marker fits within ``limit``."""
    if len(text) <= limit:
        return text
    return text[: max(limit - len(TRUNCATION_MARKER), 0)] + TRUNCATION_MARKER


def _media_url(item: Any) -> str:
    if isinstance(item, dict):
        return str(item.get("url") or "")
    return str(item) if item is not None else ""


def format_media(items: list[Any], limit: int, preview_count: int) -> str:
    """Render a media list as newline-joined URLs.

    When the joined text would exceed ``limit``, only the first
    ``preview_count`` URLs are kept, followed by a count of the rest.
    """
    urls = [url for url in (_media_url(item) for item in items) if url]
    joined = "\n".join(urls)
    if len(joined) <= limit:
        return joined
    remaining = len(urls) - preview_count
    lines = urls[:preview_count] + [MORE_URLS_TEMPLATE.format(count=remaining)]
    return truncate_text("\n".join(lines), limit)


def _clean_text(text: str) -> str:
    return ILLEGAL_CHARACTERS_RE.sub("", text)


def _json_text(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


class ExportBuilder:
    """Builds XLSX workbooks from the content collections."""

    def __init__(
        self,
        store: DocumentStore,
        registry: SchemaRegistry = REGISTRY,
        cell_text_limit: int | None = None,
        max_column_width: int | None = None,
        url_preview_count: int | None = None,
    ):
        exchange = settings.exchange
        self.store = store
        self.registry = registry
        self.cell_text_limit = cell_text_limit or exchange.cell_text_limit
        self.max_column_width = max_column_width or exchange.max_column_width
        self.url_preview_count = url_preview_count or exchange.url_preview_count

    # =========================================================================
    # Cell rendering
    # =========================================================================

    def render_value(self, schema: CollectionSchema, column: str, value: Any) -> Any:
        """Flatten one record value to a cell-safe value."""
        if value is None:
            return None

        spec = schema.get_field(column)
        kind = spec.kind if spec is not None else None

        if kind is FieldKind.MEDIA and isinstance(value, list):
            return _clean_text(format_media(value, self.cell_text_limit, self.url_preview_count))
        if kind is FieldKind.ID_LIST and isinstance(value, list):
            return truncate_text(_json_text(value), self.cell_text_limit)

        if isinstance(value, (datetime, date)):
            return to_store_value(value)
        if isinstance(value, (bool, int, float)):
            return value
        if isinstance(value, (dict, list)):
            return _clean_text(truncate_text(_json_text(value), self.cell_text_limit))
        return _clean_text(truncate_text(str(value), self.cell_text_limit))

    def record_to_row(self, schema: CollectionSchema, record: dict[str, Any]) -> list[Any]:
        return [
            self.render_value(schema, column, record.get(column))
            for column in schema.export_columns
        ]

    # =========================================================================
    # Sheet writing
    # =========================================================================

    def _write_sheet(self, ws: Worksheet, headers: list[str], rows: list[list[Any]]) -> None:
        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="2F4F4F", end_color="2F4F4F", fill_type="solid")
        cell_alignment = Alignment(wrap_text=True, vertical="top")

        for col_idx, header in enumerate(headers, 1):
            cell = ws.cell(row=1, column=col_idx, value=header)
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = cell_alignment

        for row_idx, row in enumerate(rows, 2):
            for col_idx, value in enumerate(row, 1):
                cell = ws.cell(row=row_idx, column=col_idx, value=value)
                if isinstance(value, str):
                    # Text starting with "=" is stored as text, never as a formula
                    cell.data_type = "s"
                cell.alignment = cell_alignment

        # Auto-adjust column widths
        for col_idx, header in enumerate(headers, 1):
            max_length = len(header)
            for row in rows:
                value = row[col_idx - 1]
                if value is not None and value != "":
                    max_length = max(max_length, len(str(value)))
            col_letter = get_column_letter(col_idx)
            ws.column_dimensions[col_letter].width = min(max_length + 2, self.max_column_width)

        # Freeze header row
        ws.freeze_panes = "A2"

    @staticmethod
    def _save(wb: Workbook) -> bytes:
        output = io.BytesIO()
        wb.save(output)
        return output.getvalue()

    async def _add_collection_sheet(self, wb: Workbook, schema: CollectionSchema) -> int:
        records = await self.store.list_all(schema.name)
        rows = [self.record_to_row(schema, record) for record in records]
        ws = wb.create_sheet(title=schema.sheet_name)
        self._write_sheet(ws, schema.export_columns, rows)
        return len(rows)

    # =========================================================================
    # Exports
    # =========================================================================

    async def export_collection(self, collection_name: str) -> bytes:
        """Export one collection to a single-sheet workbook.

        Raises:
            UnknownCollectionError: If the collection has no schema.
        """
        schema = self.registry.require(collection_name)
        wb = Workbook()
        wb.remove(wb.active)
        count = await self._add_collection_sheet(wb, schema)
        logger.info("Exported %d %s records", count, collection_name)
        return self._save(wb)

    async def export_all(self, collections: Iterable[str] | None = None) -> bytes:
        """Export every known collection, one sheet each, in import order.

        Empty collections still get a header-only sheet.

        Args:
            collections: Optional subset of collection names to export.

        Raises:
            UnknownCollectionError: If a requested collection has no schema.
        """
        selected = set(self.registry.import_order)
        if collections:
            selected = {self.registry.require(name).name for name in collections}

        wb = Workbook()
        wb.remove(wb.active)
        total = 0
        for collection_name in self.registry.import_order:
            if collection_name not in selected:
                continue
            total += await self._add_collection_sheet(wb, self.registry.require(collection_name))
        logger.info("Exported %d records across %d collections", total, len(selected))
        return self._save(wb)

    def build_template(self, collection_name: str) -> bytes:
        """Build an empty import template listing a collection's import columns."""
        schema = self.registry.require(collection_name)
        wb = Workbook()
        ws = wb.active
        ws.title = schema.sheet_name
        self._write_sheet(ws, schema.import_columns, [])
        return self._save(wb)

    async def export_record_media(self, collection_name: str, record_id: str) -> bytes:
        """Export every media URL of one record to a ``Media`` sheet.

        Raises:
            UnknownCollectionError: If the collection has no schema.
            RecordNotFoundError: If the record does not exist.
            ValueError: If the record has no media URLs.
        """
        schema = self.registry.require(collection_name)
        record = await self.store.get(collection_name, record_id)
        if record is None:
            raise RecordNotFoundError(collection_name, record_id)

        record_name = " - ".join(
            str(record.get(name)) for name in schema.title_fields if record.get(name)
        )

        rows: list[list[Any]] = []
        for spec in schema.fields_of_kind(FieldKind.URL, FieldKind.MEDIA):
            label, file_stem = _MEDIA_LABELS.get(spec.name, (spec.name, spec.name))
            value = record.get(spec.name)
            if spec.kind is FieldKind.URL:
                if value:
                    rows.append([record_name, label, str(value), file_stem])
                continue
            for index, item in enumerate(value or [], 1):
                url = _media_url(item)
                if not url:
                    continue
                file_name = item.get("fileName") if isinstance(item, dict) else None
                rows.append([record_name, label, url, file_name or f"{file_stem}-{index}"])

        if not rows:
            raise ValueError(f"No media found for {collection_name} record '{record_id}'")

        wb = Workbook()
        ws = wb.active
        ws.title = MEDIA_SHEET_NAME
        self._write_sheet(ws, MEDIA_SHEET_HEADERS, rows)
        return self._save(wb)
