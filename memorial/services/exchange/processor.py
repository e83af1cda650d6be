"""Import pipeline: rows and workbooks into the content collections."""

import logging
import time
import uuid
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from memorial.config import settings
from memorial.database import DocumentStore

from .checks import DuplicateDetector, RelationshipValidator
from .constants import EMPTY_SHEET_DETAILS, IMPORT_ID_PREFIX, ROW_NUMBER_OFFSET
from .converters import ImportRow, parse_record, to_store_value
from .errors import UnknownCollectionError
from .parsers import SheetData, Workbook
from .registry import REGISTRY, SchemaRegistry
from .results import ColumnDrift, ImportResult, PurgeSummary, WorkbookImportSummary

logger = logging.getLogger(__name__)


def generate_import_id() -> str:
    """Generate an id of the form ``import_<epoch-ms>_<9 random chars>``."""
    return f"{IMPORT_ID_PREFIX}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class ImportPipeline:
    """Imports spreadsheet rows into the content collections.

    Each public import call is one run with its own duplicate memo and
    relation cache. Rows and collections are processed strictly in order,
    with every store call awaited before the next row starts.
    """

    def __init__(
        self,
        store: DocumentStore,
        registry: SchemaRegistry = REGISTRY,
        import_source: str | None = None,
    ):
        self.store = store
        self.registry = registry
        self.import_source = import_source or settings.exchange.import_source

    def _new_run(self) -> tuple[DuplicateDetector, RelationshipValidator]:
        return (
            DuplicateDetector(self.store, self.registry),
            RelationshipValidator(self.store, self.registry),
        )

    async def import_collection(
        self, collection_name: str, rows: Iterable[ImportRow]
    ) -> ImportResult:
        """Import rows into one collection.

        Unknown collections produce a single row-0 error and nothing is
        processed. Row failures are recorded and the next row proceeds.
        """
        detector, validator = self._new_run()
        return await self._import_rows(collection_name, rows, detector, validator)

    async def _import_rows(
        self,
        collection_name: str,
        rows: Iterable[ImportRow],
        detector: DuplicateDetector,
        validator: RelationshipValidator,
    ) -> ImportResult:
        result = ImportResult()

        schema = self.registry.get(collection_name)
        if schema is None:
            result.add_error(0, str(UnknownCollectionError(collection_name)))
            return result

        for index, row in enumerate(rows):
            row_number = index + ROW_NUMBER_OFFSET
            try:
                record = parse_record(schema, row)

                check = await detector.is_duplicate(collection_name, record)
                if check.is_duplicate:
                    result.skipped += 1
                    existing_id = (check.existing_record or {}).get("id")
                    logger.debug("Row %d: skipped duplicate (%s)", row_number, existing_id)
                    continue

                relations = await validator.validate_relations(collection_name, record)
                if not relations.valid:
                    result.add_error(
                        row_number,
                        f"Relationship validation failed: {', '.join(relations.errors)}",
                    )
                    continue

                record_id = generate_import_id()
                now = datetime.now(timezone.utc)
                document = to_store_value(
                    {
                        **record,
                        "id": record_id,
                        "createdAt": now,
                        "updatedAt": now,
                        "importedAt": now,
                        "importSource": self.import_source,
                    }
                )
                await self.store.set(collection_name, record_id, document)
                detector.remember(collection_name, document)
                result.imported += 1
                logger.debug("Row %d: imported as %s", row_number, record_id)

            except Exception as e:
                result.add_error(row_number, str(e) or "Unknown error")
                logger.warning("Import error on %s row %d: %s", collection_name, row_number, e)

        return result.finalize()

    async def import_sheet(self, collection_name: str, workbook: Workbook) -> ImportResult:
        """Import the first sheet of a workbook into the named collection."""
        self.registry.require(collection_name)
        if not workbook:
            return ImportResult.empty_sheet(EMPTY_SHEET_DETAILS)
        sheet = next(iter(workbook.values()))
        if sheet.is_empty:
            return ImportResult.empty_sheet(EMPTY_SHEET_DETAILS)
        return await self.import_collection(collection_name, sheet.rows)

    async def import_workbook(self, workbook: Workbook) -> WorkbookImportSummary:
        """Import every known sheet of a workbook in dependency order.

        Sheets that map to no known collection are ignored. A failure of one
        collection is recorded and the remaining collections still run.
        """
        summary = WorkbookImportSummary(drift=self.detect_column_drift(workbook))
        detector, validator = self._new_run()

        logger.info("Starting workbook import")
        for collection_name in self.registry.import_order:
            schema = self.registry.require(collection_name)
            sheet = workbook.get(schema.sheet_name)
            if sheet is None:
                logger.info("Skipping %s (sheet not found)", collection_name)
                continue

            if sheet.is_empty:
                logger.info("Skipping %s (empty sheet)", collection_name)
                summary.results[collection_name] = ImportResult.empty_sheet(EMPTY_SHEET_DETAILS)
                continue

            try:
                result = await self._import_rows(collection_name, sheet.rows, detector, validator)
            except Exception as e:
                logger.error("Error importing %s: %s", collection_name, e)
                summary.results[collection_name] = ImportResult.collection_failure(str(e))
                summary.total_errors += 1
                continue

            summary.results[collection_name] = result
            summary.total_imported += result.imported
            summary.total_skipped += result.skipped
            summary.total_errors += len(result.errors)
            logger.info(
                "%s: %d imported, %d skipped, %d errors",
                collection_name,
                result.imported,
                result.skipped,
                len(result.errors),
            )

        summary.success = all(result.success for result in summary.results.values())
        return summary

    def detect_column_drift(self, workbook: Mapping[str, SheetData]) -> list[ColumnDrift]:
        """Report header columns each known sheet carries beyond its schema.

        Informational only. Sheets without data rows are skipped.
        """
        drift: list[ColumnDrift] = []
        for sheet_name, sheet in workbook.items():
            schema = self.registry.by_sheet_name(sheet_name)
            if schema is None or sheet.is_empty:
                continue
            known = schema.known_columns
            unknown = [header for header in sheet.headers if header not in known]
            if unknown:
                logger.warning("%s has unknown columns: %s", sheet_name, unknown)
                drift.append(ColumnDrift(collection=schema.name, columns=unknown))
        return drift

    async def purge_imported_records(self) -> PurgeSummary:
        """Delete every record whose provenance marker says it was imported."""
        summary = PurgeSummary()
        for collection_name in self.registry.names:
            try:
                records = await self.store.find(
                    collection_name, {"importSource": self.import_source}
                )
                deleted = 0
                for record in records:
                    if await self.store.delete(collection_name, record["id"]):
                        deleted += 1
            except Exception as e:
                logger.error("Error deleting imported %s: %s", collection_name, e)
                summary.failed.append(collection_name)
                continue

            summary.deleted[collection_name] = deleted
            summary.total_deleted += deleted
            if deleted:
                logger.info("Deleted %d imported records from %s", deleted, collection_name)

        return summary
