"""Pydantic schemas for the data exchange API."""

from pydantic import BaseModel, Field

from memorial.services.exchange import (
    ColumnDrift,
    ImportResult,
    WorkbookImportSummary,
    preview_errors,
)


class CollectionImportResponse(ImportResult):
    """Import result for one collection, with a capped error preview."""

    collection: str
    error_preview: list[str] = Field(default_factory=list)

    @classmethod
    def from_result(
        cls, collection: str, result: ImportResult, preview_limit: int
    ) -> "CollectionImportResponse":
        return cls(
            collection=collection,
            error_preview=preview_errors(result.errors, preview_limit),
            **result.model_dump(),
        )


class WorkbookImportResponse(WorkbookImportSummary):
    """Workbook import summary with a capped error preview per collection."""

    error_previews: dict[str, list[str]] = Field(default_factory=dict)

    @classmethod
    def from_summary(
        cls, summary: WorkbookImportSummary, preview_limit: int
    ) -> "WorkbookImportResponse":
        previews = {
            name: preview_errors(result.errors, preview_limit)
            for name, result in summary.results.items()
            if result.errors
        }
        return cls(error_previews=previews, **summary.model_dump())


class DriftResponse(BaseModel):
    """Unknown header columns found in an uploaded workbook."""

    has_drift: bool
    drift: list[ColumnDrift]
