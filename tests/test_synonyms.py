"""Tests for the editable synonym tables."""

import logging
import tomllib

import pytest
from pydantic import ValidationError

from catalogbox.schemas.catalog import CanonicalField
from catalogbox.services.xlsx_import import (
    DEFAULT_SYNONYMS,
    build_batch_schema,
    load_synonym_table,
    normalize_header,
    resolve_columns,
)


SYNONYMS_TOML = """
[header_aliases]
"Cód. Interno" = "sku"
"NCM/SH" = "ncm"

[field_synonyms]
unit = ["medida"]
identifier = "ref_fornecedor"
"""


@pytest.fixture
def synonyms_file(tmp_path):
    path = tmp_path / "synonyms.toml"
    path.write_text(SYNONYMS_TOML, encoding="utf-8")
    return path


def test_defaults_without_file() -> None:
    assert load_synonym_table(None) is DEFAULT_SYNONYMS


def test_aliases_are_slugged(synonyms_file) -> None:
    """Alias keys may be written the way they appear in a header row."""
    table = load_synonym_table(synonyms_file)
    assert table.header_aliases["cod_interno"] == "sku"
    assert normalize_header("Cód. Interno", table) == "sku"
    assert normalize_header("NCM / SH", table) == "ncm"


def test_default_aliases_are_kept(synonyms_file) -> None:
    table = load_synonym_table(synonyms_file)
    assert normalize_header("Código de Barras", table) == "ean"


def test_field_synonyms_go_first(synonyms_file) -> None:
    table = load_synonym_table(synonyms_file)
    assert table.synonyms_for(CanonicalField.UNIT)[0] == "medida"
    assert "unidade" in table.synonyms_for(CanonicalField.UNIT)
    assert table.synonyms_for(CanonicalField.IDENTIFIER)[0] == "ref_fornecedor"


def test_extended_table_resolves_new_headers(synonyms_file) -> None:
    table = load_synonym_table(synonyms_file)
    schema = build_batch_schema(["Nome", "Medida", "Ref. Fornecedor", "SKU"], table)
    assert schema.identifier_column == 2
    assert schema.column_for(CanonicalField.UNIT) == 1


def test_defaults_are_not_mutated(synonyms_file) -> None:
    load_synonym_table(synonyms_file)
    assert "cod_interno" not in DEFAULT_SYNONYMS.header_aliases
    _, fallback = resolve_columns(["ref_fornecedor"])
    assert fallback is True


def test_default_table_is_frozen() -> None:
    with pytest.raises(ValidationError):
        DEFAULT_SYNONYMS.header_aliases = {}
    synonyms = DEFAULT_SYNONYMS.synonyms_for(CanonicalField.IDENTIFIER)
    assert isinstance(synonyms, tuple)
    assert synonyms[0] == "sku"


def test_unknown_field_is_ignored(tmp_path, caplog) -> None:
    path = tmp_path / "synonyms.toml"
    path.write_text('[field_synonyms]\nweight = ["peso"]\n', encoding="utf-8")

    with caplog.at_level(logging.WARNING):
        table = load_synonym_table(path)

    assert "unknown field 'weight'" in caplog.text
    assert table.field_synonyms == DEFAULT_SYNONYMS.field_synonyms


def test_missing_file_raises(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_synonym_table(tmp_path / "missing.toml")


def test_invalid_toml_raises(tmp_path) -> None:
    path = tmp_path / "synonyms.toml"
    path.write_text("[header_aliases\n", encoding="utf-8")
    with pytest.raises(tomllib.TOMLDecodeError):
        load_synonym_table(path)
