"""Editable synonym tables for header normalisation and column resolution.

The defaults live in ``constants``. A TOML file can extend them::

    [header_aliases]
    "Cód. Interno" = "sku"
    ncm = "ncm"

    [field_synonyms]
    identifier = ["cod_interno"]
    unit = ["medida"]

Alias keys are slugged the same way headers are, so they may be written the
way they appear in spreadsheets. Field synonym lists from the file go ahead
of the defaults.
"""

import logging
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from catalogbox.schemas.catalog import CanonicalField

from .constants import FIELD_SYNONYMS, HEADER_ALIASES
from .text import slugify_header

logger = logging.getLogger(__name__)


class SynonymTable(BaseModel):
    """Header alias table plus per-field synonym priority lists."""

    model_config = ConfigDict(frozen=True)

    header_aliases: dict[str, str] = Field(default_factory=lambda: dict(HEADER_ALIASES))
    field_synonyms: dict[CanonicalField, tuple[str, ...]] = Field(
        default_factory=lambda: {field: tuple(syns) for field, syns in FIELD_SYNONYMS.items()}
    )

    def synonyms_for(self, field: CanonicalField) -> tuple[str, ...]:
        return self.field_synonyms.get(field, ())

    def extended(self, data: dict[str, Any]) -> "SynonymTable":
        """Return a copy extended with the tables of a parsed TOML document."""
        aliases = dict(self.header_aliases)
        for raw, key in (data.get("header_aliases") or {}).items():
            slug = slugify_header(str(raw))
            if not slug:
                continue
            aliases[slug] = slugify_header(str(key)) or str(key)

        field_synonyms = {field: list(syns) for field, syns in self.field_synonyms.items()}
        for raw_field, extra in (data.get("field_synonyms") or {}).items():
            try:
                field = CanonicalField(raw_field)
            except ValueError:
                logger.warning("Ignoring synonyms for unknown field '%s'", raw_field)
                continue
            if isinstance(extra, str):
                extra = [extra]
            merged = [slugify_header(str(s)) for s in extra]
            merged += [s for s in field_synonyms.get(field, []) if s not in merged]
            field_synonyms[field] = tuple(s for s in merged if s)

        return SynonymTable(header_aliases=aliases, field_synonyms=field_synonyms)


DEFAULT_SYNONYMS = SynonymTable()


def load_synonym_table(path: Path | None = None) -> SynonymTable:
    """Load the synonym table, extending the defaults with a TOML file.

    Args:
        path: TOML file with ``header_aliases``/``field_synonyms`` tables.
              None returns the defaults.

    Returns:
        The effective SynonymTable.

    Raises:
        FileNotFoundError: If the path is given but does not exist.
        tomllib.TOMLDecodeError: If the file is not valid TOML.
    """
    if path is None:
        return DEFAULT_SYNONYMS
    with open(path, "rb") as f:
        data = tomllib.load(f)
    logger.info("Loaded header synonyms from: %s", path)
    return DEFAULT_SYNONYMS.extended(data)
