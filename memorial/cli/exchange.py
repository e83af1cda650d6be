"""Command-line data exchange for Memorial Console.

Commands:
    serve            Run the API server
    import FILE      Import a workbook (every known sheet, or one collection)
    drift FILE       Report unknown columns in a workbook
    export OUT       Export every collection, or one collection, to a workbook
    template NAME    Write an empty import template for a collection
    purge-imported   Delete every record created by a spreadsheet import
"""

import argparse
import asyncio
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path

from memorial.config import configure_logging, settings
from memorial.database import DocumentStore, close_db, get_document_store, init_db
from memorial.services.exchange import (
    ExchangeError,
    ImportPipeline,
    ImportResult,
    preview_errors,
    read_workbook,
)
from memorial.services.export_service import ExportBuilder


def _print_result(collection: str, result: ImportResult) -> None:
    print(f"{collection}: {result.details}")
    for line in preview_errors(result.errors, settings.exchange.error_preview_limit):
        print(f"  {line}")


async def import_file(store: DocumentStore, path: Path, collection: str | None = None) -> int:
    """Import a workbook file. Returns the process exit code."""
    workbook = read_workbook(path.read_bytes())
    pipeline = ImportPipeline(store)

    if collection:
        result = await pipeline.import_sheet(collection, workbook)
        _print_result(collection, result)
        return 0 if result.success else 1

    summary = await pipeline.import_workbook(workbook)
    for drift in summary.drift:
        print(f"Warning: {drift.collection} has unknown columns: {', '.join(drift.columns)}")
    for name, result in summary.results.items():
        _print_result(name, result)
    print(
        f"Total: {summary.total_imported} imported, "
        f"{summary.total_skipped} skipped, {summary.total_errors} errors"
    )
    return 0 if summary.success else 1


async def drift_file(store: DocumentStore, path: Path) -> int:
    """Print the unknown columns of a workbook file."""
    workbook = read_workbook(path.read_bytes())
    drift = ImportPipeline(store).detect_column_drift(workbook)
    if not drift:
        print("No unknown columns found.")
    for entry in drift:
        print(f"{entry.collection}: {', '.join(entry.columns)}")
    return 0


async def export_file(store: DocumentStore, out: Path, collection: str | None = None) -> int:
    """Write an export workbook to ``out``."""
    builder = ExportBuilder(store)
    if collection:
        content = await builder.export_collection(collection)
    else:
        content = await builder.export_all()
    out.write_bytes(content)
    print(f"Exported to {out}")
    return 0


async def template_file(store: DocumentStore, collection: str, out: Path) -> int:
    """Write an empty import template for a collection to ``out``."""
    out.write_bytes(ExportBuilder(store).build_template(collection))
    print(f"Template for {collection} written to {out}")
    return 0


async def purge_imported(store: DocumentStore) -> int:
    """Delete every imported record and print the per-collection counts."""
    summary = await ImportPipeline(store).purge_imported_records()
    for name, count in summary.deleted.items():
        if count:
            print(f"{name}: {count} deleted")
    for name in summary.failed:
        print(f"{name}: cleanup failed")
    print(f"Deleted {summary.total_deleted} imported records.")
    return 1 if summary.failed else 0


async def _with_store(command: Callable[[DocumentStore], Awaitable[int]]) -> int:
    await init_db()
    try:
        return await command(get_document_store())
    finally:
        await close_db()


def serve(host: str | None, port: int | None, reload: bool) -> int:
    import uvicorn

    uvicorn.run(
        "memorial.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="memorial",
        description="Spreadsheet data exchange for Memorial Console",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, help="Port to bind to")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    import_parser = subparsers.add_parser("import", help="Import a workbook")
    import_parser.add_argument("file", type=Path, help="XLSX workbook to import")
    import_parser.add_argument(
        "--collection", "-c", help="Import the first sheet into this collection"
    )

    drift_parser = subparsers.add_parser("drift", help="Report unknown workbook columns")
    drift_parser.add_argument("file", type=Path, help="XLSX workbook to inspect")

    export_parser = subparsers.add_parser("export", help="Export collections to a workbook")
    export_parser.add_argument("out", type=Path, help="Output XLSX path")
    export_parser.add_argument("--collection", "-c", help="Export only this collection")

    template_parser = subparsers.add_parser("template", help="Write an empty import template")
    template_parser.add_argument("name", help="Collection name")
    template_parser.add_argument("out", type=Path, help="Output XLSX path")

    purge_parser = subparsers.add_parser(
        "purge-imported", help="Delete every record created by an import"
    )
    purge_parser.add_argument("-y", "--yes", action="store_true", help="Skip confirmation prompt")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.command == "serve":
        return serve(args.host, args.port, args.reload)

    configure_logging()

    if args.command == "purge-imported" and not args.yes:
        confirm = input("Delete every imported record from every collection? [y/N]: ")
        if confirm.lower() != "y":
            print("Aborted.")
            return 1

    commands: dict[str, Callable[[DocumentStore], Awaitable[int]]] = {
        "import": lambda store: import_file(store, args.file, args.collection),
        "drift": lambda store: drift_file(store, args.file),
        "export": lambda store: export_file(store, args.out, args.collection),
        "template": lambda store: template_file(store, args.name, args.out),
        "purge-imported": purge_imported,
    }

    try:
        return asyncio.run(_with_store(commands[args.command]))
    except (ExchangeError, OSError) as e:
        print(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        print("\nAborted.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
