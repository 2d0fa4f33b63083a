"""CatalogBox command line: import and export product spreadsheets.

Usage:
    catalogbox import FILE [--append]
    catalogbox export [-o PATH]
    catalogbox headers
    catalogbox purge [-y]

Options:
    -v, --verbose     Debug logging
    -y, --yes         Skip confirmation prompt (purge)
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from catalogbox.config import settings
from catalogbox.errors import CatalogImportError
from catalogbox.schemas.catalog import ImportMode
from catalogbox.services.export_service import export_catalog_to_file, export_catalog_to_xlsx
from catalogbox.services.file_storage import CatalogFileStorage
from catalogbox.services.xlsx_import import import_catalog, load_synonym_table
from catalogbox.store import CatalogStore, MongoCatalogStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="catalogbox",
        description="Import and export CatalogBox product spreadsheets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_parser = subparsers.add_parser("import", help="Import an XLSX product spreadsheet")
    import_parser.add_argument("file", type=Path, help="Workbook to import")
    import_parser.add_argument(
        "--append",
        action="store_true",
        help="Merge into the catalog instead of replacing it",
    )

    export_parser = subparsers.add_parser("export", help="Export the catalog to XLSX")
    export_parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output file (default: a timestamped file in the export directory)",
    )

    subparsers.add_parser("headers", help="Show the export column layout")

    purge_parser = subparsers.add_parser("purge", help="Delete every product and the column layout")
    purge_parser.add_argument("-y", "--yes", action="store_true", help="Skip confirmation prompt")

    return parser


def _print_progress(processed: int, total: int) -> None:
    print(f"  {processed}/{total} records written")


async def run_import(store: CatalogStore, path: Path, append: bool) -> int:
    content = path.read_bytes()
    summary = await import_catalog(
        content,
        ImportMode.APPEND if append else ImportMode.OVERWRITE,
        store,
        filename=path.name,
        synonyms=load_synonym_table(settings.synonyms_file),
        on_progress=_print_progress,
        progress_interval=settings.progress_interval,
        max_rows=settings.max_rows,
        archive=CatalogFileStorage() if settings.archive_imports else None,
    )
    print(f"Imported {summary.records_stored} products from {path.name} ({summary.mode.value})")
    print(f"  Rows read: {summary.rows_read}")
    print(f"  Rows skipped (blank code): {summary.rows_skipped}")
    print(f"  Duplicates dropped: {summary.duplicates_dropped}")
    for warning in summary.warnings:
        print(f"  Warning: {warning}")
    return 0


async def run_export(store: CatalogStore, output: Path | None) -> int:
    if output is None:
        path = await export_catalog_to_file(store, sheet_title=settings.sheet_title)
    else:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(await export_catalog_to_xlsx(store, settings.sheet_title))
        path = output
    print(f"Exported {await store.count_records()} products to {path}")
    return 0


async def run_headers(store: CatalogStore) -> int:
    headers = await store.get_header_order()
    if not headers:
        print("No column layout yet. Run an overwrite import first.")
        return 0
    for header in headers:
        print(f"{header.position + 1:>4}  {header.raw_header}  ->  {header.key}")
    return 0


async def run_purge(store: CatalogStore, yes: bool) -> int:
    count = await store.count_records()
    if count == 0:
        print("Catalog is already empty.")
        return 0

    print(f"Products to be deleted: {count}")
    if not yes:
        confirm = input("\nAre you sure you want to purge the catalog? [y/N]: ")
        if confirm.lower() not in ("y", "yes"):
            print("Aborted.")
            return 0

    async with store.transaction():
        await store.clear_all()
    print(f"Deleted {count} products and the column layout.")
    return 0


async def run_command(args: argparse.Namespace, store: CatalogStore) -> int:
    """Run a parsed command against a store."""
    if args.command == "import":
        return await run_import(store, args.file, args.append)
    if args.command == "export":
        return await run_export(store, args.output)
    if args.command == "headers":
        return await run_headers(store)
    if args.command == "purge":
        return await run_purge(store, args.yes)
    raise ValueError(f"Unknown command: {args.command}")


async def _run_with_database(args: argparse.Namespace) -> int:
    from catalogbox.database import close_db, get_client, init_db

    await init_db()
    try:
        store = MongoCatalogStore(get_client(), use_transactions=settings.use_transactions)
        return await run_command(args, store)
    finally:
        await close_db()


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return asyncio.run(_run_with_database(args))
    except CatalogImportError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nAborted.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
