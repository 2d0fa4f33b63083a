"""Header normalisation, deduplication and canonical column resolution."""

import logging
from dataclasses import dataclass, field
from typing import Sequence

from catalogbox.schemas.catalog import CanonicalField, HeaderColumn

from .constants import BLANK_HEADER_KEY, FIELD_PRIORITY
from .synonyms import DEFAULT_SYNONYMS, SynonymTable
from .text import slugify_header

logger = logging.getLogger(__name__)


def normalize_header(header: str, synonyms: SynonymTable = DEFAULT_SYNONYMS) -> str:
    """Map a raw header to its canonical key.

    The header is slugged (lowercase, accents folded, non-word runs -> "_")
    and looked up in the alias table; unknown slugs are their own key.
    Blank headers get BLANK_HEADER_KEY.

    Examples:
        "Código de Barras" -> "ean"
        "Preço" -> "preco"
        "Cor / Tamanho" -> "cor_tamanho"
    """
    slug = slugify_header(header)
    if not slug:
        return BLANK_HEADER_KEY
    return synonyms.header_aliases.get(slug, slug)


def dedupe_headers(keys: Sequence[str]) -> list[str]:
    """Make keys unique by suffixing repeats with _2, _3, ...

    Output has the same length and order as the input.
    """
    seen: dict[str, int] = {}
    taken = set(keys)
    result: list[str] = []
    for key in keys:
        count = seen.get(key, 0) + 1
        seen[key] = count
        if count == 1:
            result.append(key)
            continue
        candidate = f"{key}_{count}"
        # A literal "preco_2" column elsewhere in the row keeps its name
        while candidate in taken:
            count += 1
            candidate = f"{key}_{count}"
        seen[key] = count
        taken.add(candidate)
        result.append(candidate)
    return result


@dataclass(frozen=True)
class BatchSchema:
    """Header layout of one import batch, resolved once and reused per row."""

    raw_headers: tuple[str, ...]
    keys: tuple[str, ...]
    field_columns: dict[CanonicalField, int | None] = field(default_factory=dict)
    identifier_fallback: bool = False

    def column_for(self, canonical: CanonicalField) -> int | None:
        return self.field_columns.get(canonical)

    @property
    def identifier_column(self) -> int:
        column = self.field_columns.get(CanonicalField.IDENTIFIER)
        return 0 if column is None else column

    def header_columns(self) -> list[HeaderColumn]:
        """Header order entries: raw header, position and assigned key."""
        return [
            HeaderColumn(position=i, raw_header=raw, key=key)
            for i, (raw, key) in enumerate(zip(self.raw_headers, self.keys))
        ]


def resolve_columns(
    keys: Sequence[str],
    synonyms: SynonymTable = DEFAULT_SYNONYMS,
) -> tuple[dict[CanonicalField, int | None], bool]:
    """Find the column backing each canonical field.

    Fields are resolved in FIELD_PRIORITY order. For each field the synonym
    list is walked in priority order and the first still-unclaimed column
    whose key matches (case-insensitively) wins. A claimed column is not
    eligible for later fields.

    Returns:
        (field -> column index or None, identifier_fallback). When no column
        matches the identifier synonyms, column 0 is used and the flag is set.
    """
    lowered = [k.lower() for k in keys]
    claimed: set[int] = set()
    columns: dict[CanonicalField, int | None] = {}
    fallback = False

    for canonical in FIELD_PRIORITY:
        match = None
        for synonym in synonyms.synonyms_for(canonical):
            target = synonym.lower()
            match = next(
                (i for i, k in enumerate(lowered) if k == target and i not in claimed),
                None,
            )
            if match is not None:
                break
        if match is None and canonical is CanonicalField.IDENTIFIER and keys:
            match = 0
            fallback = True
        columns[canonical] = match
        if match is not None:
            claimed.add(match)

    return columns, fallback


def build_batch_schema(
    raw_headers: Sequence[str],
    synonyms: SynonymTable = DEFAULT_SYNONYMS,
) -> BatchSchema:
    """Normalise, dedupe and resolve a header row into a BatchSchema."""
    keys = dedupe_headers([normalize_header(h, synonyms) for h in raw_headers])
    columns, fallback = resolve_columns(keys, synonyms)
    if fallback:
        logger.warning(
            "No identifier column recognised among %s; using first column '%s'",
            keys,
            raw_headers[0] if raw_headers else "",
        )
    return BatchSchema(
        raw_headers=tuple(raw_headers),
        keys=tuple(keys),
        field_columns=columns,
        identifier_fallback=fallback,
    )
