"""Fluent query scripts for analyzed documents."""

from . import typed
from .interpreter import GENERATED_SCRIPT_QUERY, CannedInterpreter, PageInterpreter, to_json_payload
from .query import (
    Cardinality,
    Document,
    FluentQuery,
    decode_result,
    next_cardinality,
    open_document,
    # Error types
    ErrorCode,
    DocumentLabError,
    FluentQueryError,
    JsonError,
    ClosedError,
)
from .typed import Direction, Subset, TextType

__version__ = "0.1.0"

__all__ = [
    "version",
    "Document",
    "FluentQuery",
    "Cardinality",
    "decode_result",
    "next_cardinality",
    "open_document",
    "PageInterpreter",
    "CannedInterpreter",
    "GENERATED_SCRIPT_QUERY",
    "to_json_payload",
    "TextType",
    "Direction",
    "Subset",
    "typed",
    # Error types
    "ErrorCode",
    "DocumentLabError",
    "FluentQueryError",
    "JsonError",
    "ClosedError",
]


def version() -> str:
    """Return the package version string."""
    return __version__
