"""XLSX import engine: header resolution, cell text and the import pipeline."""

from .cells import cell_text, format_datetime, format_general, format_number, format_value
from .constants import (
    BLANK_HEADER_KEY,
    DEFAULT_PROGRESS_INTERVAL,
    FIELD_PRIORITY,
    FIELD_SYNONYMS,
    HEADER_ALIASES,
)
from .headers import (
    BatchSchema,
    build_batch_schema,
    dedupe_headers,
    normalize_header,
    resolve_columns,
)
from .parsers import Deduplicator, ParsedProduct, open_sheet_rows, parse_row, parse_rows
from .processor import StagedImport, import_catalog, stage_import
from .synonyms import DEFAULT_SYNONYMS, SynonymTable, load_synonym_table
from .text import fold_accents, slugify_header

__all__ = [
    # Constants
    "BLANK_HEADER_KEY",
    "DEFAULT_PROGRESS_INTERVAL",
    "FIELD_PRIORITY",
    "FIELD_SYNONYMS",
    "HEADER_ALIASES",
    # Synonyms
    "DEFAULT_SYNONYMS",
    "SynonymTable",
    "load_synonym_table",
    # Headers
    "BatchSchema",
    "build_batch_schema",
    "dedupe_headers",
    "fold_accents",
    "normalize_header",
    "resolve_columns",
    "slugify_header",
    # Cells
    "cell_text",
    "format_datetime",
    "format_general",
    "format_number",
    "format_value",
    # Parsers
    "Deduplicator",
    "ParsedProduct",
    "open_sheet_rows",
    "parse_row",
    "parse_rows",
    # Processor
    "StagedImport",
    "import_catalog",
    "stage_import",
]
