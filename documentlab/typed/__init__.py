"""Typed vocabulary for building document queries."""

from .schema import (
    Direction,
    NormalizedColumn,
    Subset,
    TableColumnSchema,
    TableSchema,
    TextType,
    is_known_text_type,
    normalize_direction,
    normalize_table_schema,
    normalize_text_types,
)

__all__ = [
    "TextType",
    "Direction",
    "Subset",
    "TableColumnSchema",
    "TableSchema",
    "NormalizedColumn",
    "is_known_text_type",
    "normalize_direction",
    "normalize_table_schema",
    "normalize_text_types",
]
