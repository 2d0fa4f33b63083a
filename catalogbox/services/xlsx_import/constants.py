"""Constants for the spreadsheet import engine."""

from catalogbox.schemas.catalog import CanonicalField

# Key given to a header cell that slugs to nothing (blank header)
BLANK_HEADER_KEY = "coluna"

# Rows between progress reports when no setting is given
DEFAULT_PROGRESS_INTERVAL = 100

# Header alias table: cleaned header slug -> canonical key
HEADER_ALIASES: dict[str, str] = {
    # ean
    "codigo_de_barras": "ean",
    "codigo_barras": "ean",
    "cod_barras": "ean",
    "barcode": "ean",
    "bar_code": "ean",
    "ean13": "ean",
    "ean8": "ean",
    "gtin": "ean",
    # sku
    "codigo": "sku",
    "cod": "sku",
    "item": "sku",
    "produto": "sku",
    "ref": "sku",
    "referencia": "sku",
    # nome
    "nome_do_produto": "nome",
    "produto_nome": "nome",
    "descricao_produto": "nome",
    "titulo": "nome",
    "title": "nome",
    # descricao
    "description": "descricao",
    "desc": "descricao",
    "details": "descricao",
    # preco
    "price": "preco",
    "valor": "preco",
    "vlr": "preco",
    "custo": "preco",
    # quantidade
    "qtd": "quantidade",
    "qty": "quantidade",
    "estoque": "quantidade",
    "stock": "quantidade",
    "saldo": "quantidade",
    # categoria
    "cat": "categoria",
    "category": "categoria",
    "grupo": "categoria",
    "setor": "categoria",
    "departamento": "categoria",
    # unidade
    "un": "unidade",
    "unit": "unidade",
    "und": "unidade",
    "uni": "unidade",
}

# Canonical field -> header keys in priority order
FIELD_SYNONYMS: dict[CanonicalField, list[str]] = {
    CanonicalField.IDENTIFIER: ["sku", "codigo", "code", "id", "produto", "item"],
    CanonicalField.NAME: ["nome", "name", "titulo", "title", "descricao"],
    CanonicalField.DESCRIPTION: ["descricao", "desc", "details"],
    CanonicalField.CATEGORY: ["categoria", "category", "grupo", "setor"],
    CanonicalField.UNIT: ["unidade", "unit", "und", "uni"],
}

# Resolution order; earlier fields claim columns first
FIELD_PRIORITY: list[CanonicalField] = [
    CanonicalField.IDENTIFIER,
    CanonicalField.NAME,
    CanonicalField.DESCRIPTION,
    CanonicalField.CATEGORY,
    CanonicalField.UNIT,
]
