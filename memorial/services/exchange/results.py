"""Result models returned by the import pipeline."""

from pydantic import BaseModel, Field


class RowError(BaseModel):
    """One failed row. Row 0 marks a collection-level failure."""

    row: int
    message: str


class ImportResult(BaseModel):
    """Outcome of importing the rows of one collection."""

    success: bool = False
    imported: int = 0
    skipped: int = 0
    errors: list[RowError] = Field(default_factory=list)
    details: str = ""

    def add_error(self, row: int, message: str) -> None:
        self.errors.append(RowError(row=row, message=message))

    def finalize(self) -> "ImportResult":
        """Set success and the summary line from the counters."""
        self.success = not self.errors
        self.details = (
            f"Imported: {self.imported}, "
            f"Skipped (duplicates): {self.skipped}, "
            f"Errors: {len(self.errors)}"
        )
        return self

    @classmethod
    def empty_sheet(cls, details: str) -> "ImportResult":
        return cls(success=True, details=details)

    @classmethod
    def collection_failure(cls, message: str) -> "ImportResult":
        return cls(
            success=False,
            errors=[RowError(row=0, message=f"Failed to import collection: {message}")],
            details=message,
        )


class ColumnDrift(BaseModel):
    """Header columns of a sheet that the collection does not recognise."""

    collection: str
    columns: list[str]


class WorkbookImportSummary(BaseModel):
    """Aggregate outcome of a multi-sheet workbook import."""

    success: bool = True
    # Keyed by collection name, in processing order
    results: dict[str, ImportResult] = Field(default_factory=dict)
    total_imported: int = 0
    total_skipped: int = 0
    total_errors: int = 0
    drift: list[ColumnDrift] = Field(default_factory=list)


class PurgeSummary(BaseModel):
    """Outcome of deleting previously imported records."""

    total_deleted: int = 0
    deleted: dict[str, int] = Field(default_factory=dict)
    failed: list[str] = Field(default_factory=list)


def preview_errors(errors: list[RowError], limit: int) -> list[str]:
    """Format the first ``limit`` errors for display, noting how many remain."""
    lines = [f"Row {error.row}: {error.message}" for error in errors[:limit]]
    remaining = len(errors) - limit
    if remaining > 0:
        lines.append(f"... and {remaining} more")
    return lines
