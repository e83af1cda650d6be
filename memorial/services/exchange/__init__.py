"""Spreadsheet data exchange: schema registry, row parsing and the import pipeline."""

from .checks import DuplicateCheck, DuplicateDetector, RelationCheck, RelationshipValidator
from .converters import (
    parse_date,
    parse_flag,
    parse_list,
    parse_number,
    parse_object,
    parse_row,
    parse_text,
    to_store_value,
)
from .errors import ExchangeError, RecordNotFoundError, UnknownCollectionError, WorkbookReadError
from .parsers import SheetData, Workbook, read_workbook
from .processor import ImportPipeline, generate_import_id
from .registry import REGISTRY, CollectionSchema, FieldKind, FieldSpec, Relation, SchemaRegistry
from .results import (
    ColumnDrift,
    ImportResult,
    PurgeSummary,
    RowError,
    WorkbookImportSummary,
    preview_errors,
)

__all__ = [
    # Registry
    "REGISTRY",
    "CollectionSchema",
    "FieldKind",
    "FieldSpec",
    "Relation",
    "SchemaRegistry",
    # Errors
    "ExchangeError",
    "RecordNotFoundError",
    "UnknownCollectionError",
    "WorkbookReadError",
    # Converters
    "parse_date",
    "parse_flag",
    "parse_list",
    "parse_number",
    "parse_object",
    "parse_row",
    "parse_text",
    "to_store_value",
    # Parsers
    "SheetData",
    "Workbook",
    "read_workbook",
    # Checks
    "DuplicateCheck",
    "DuplicateDetector",
    "RelationCheck",
    "RelationshipValidator",
    # Results
    "ColumnDrift",
    "ImportResult",
    "PurgeSummary",
    "RowError",
    "WorkbookImportSummary",
    "preview_errors",
    # Processor
    "ImportPipeline",
    "generate_import_id",
]
