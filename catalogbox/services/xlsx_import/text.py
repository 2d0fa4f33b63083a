"""Text helpers shared by header normalisation and synonym loading."""

import re
import unicodedata

_NON_WORD_RE = re.compile(r"\W+")


def fold_accents(text: str) -> str:
    """Strip combining marks: "Código" -> "Codigo", "Preço" -> "Preco"."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def slugify_header(header: str) -> str:
    """Lowercase, fold accents, collapse non-word runs to "_" and trim "_"."""
    cleaned = fold_accents(header.strip()).lower()
    return _NON_WORD_RE.sub("_", cleaned).strip("_")
