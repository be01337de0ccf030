"""Fluent script builder and result decoding for document queries."""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple

from .interpreter import GENERATED_SCRIPT_QUERY, PageInterpreter, to_json_payload
from .typed.schema import (
    DirectionInput,
    Subset,
    TableSchema,
    TextType,
    TextTypeInput,
    is_known_text_type,
    normalize_direction,
    normalize_table_schema,
    normalize_text_types,
)

logger = logging.getLogger(__name__)


class ErrorCode:
    """Error codes attached to DocumentLab exceptions."""
    UNKNOWN = "UNKNOWN"
    FLUENT_QUERY = "FLUENT_QUERY"
    JSON = "JSON"
    CLOSED = "CLOSED"


class DocumentLabError(Exception):
    """Base exception class for all DocumentLab errors."""

    def __init__(self, message: str, code: str = ErrorCode.UNKNOWN):
        super().__init__(message)
        self.code = code


class FluentQueryError(DocumentLabError):
    """Error raised when a fluent query is assembled incorrectly."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.FLUENT_QUERY)


class JsonError(DocumentLabError):
    """Error raised when an interpretation payload cannot be decoded."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.JSON)


class ClosedError(DocumentLabError):
    """Error raised when operations are attempted on a closed document."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.CLOSED)


class Cardinality(Enum):
    """Shape the interpreter answer is decoded into."""

    NONE = "none"
    SINGLE = "single"
    MULTI = "multi"
    ANY = "any"


# Operation kinds that touch the cardinality.
_CAPTURE = "capture"
_CAPTURE_AS = "capture_as"
_LABEL = "label"
_ANY = "any"

_INTENDED: Dict[str, Cardinality] = {
    _CAPTURE: Cardinality.SINGLE,
    _CAPTURE_AS: Cardinality.MULTI,
    _LABEL: Cardinality.SINGLE,
    _ANY: Cardinality.ANY,
}

# Anonymous capture only claims an unset query; every other kind overwrites.
_TRANSITIONS: Dict[Tuple[str, Cardinality], Cardinality] = {
    (_CAPTURE, Cardinality.NONE): Cardinality.SINGLE,
    (_CAPTURE, Cardinality.SINGLE): Cardinality.SINGLE,
    (_CAPTURE, Cardinality.MULTI): Cardinality.MULTI,
    (_CAPTURE, Cardinality.ANY): Cardinality.ANY,
}
for _kind in (_CAPTURE_AS, _LABEL, _ANY):
    for _state in Cardinality:
        _TRANSITIONS[(_kind, _state)] = _INTENDED[_kind]


def next_cardinality(kind: str, current: Cardinality, *, strict: bool = False) -> Cardinality:
    """Resolve the cardinality after an operation of ``kind``.

    In strict mode an operation may only claim an unset query or one that
    already has the cardinality the operation implies.
    """
    intended = _INTENDED.get(kind)
    if intended is None:
        raise ValueError(f"unknown capture operation '{kind}'")
    if strict and current is not Cardinality.NONE and current is not intended:
        raise FluentQueryError(
            f"Cannot combine a {intended.value} capture with a query that is already "
            f"a {current.value} capture"
        )
    return _TRANSITIONS[(kind, current)]


DecodedResult = Optional[Dict[str, Optional[str]]]


def _coerce_string(value: Any, key: str) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, (int, float)):
        return str(value)
    raise JsonError(f"value for '{key}' must be a scalar, got {type(value).__name__}")


def _parse_payload(payload: str) -> Any:
    try:
        return json.loads(payload)
    except ValueError as err:
        raise JsonError(f"interpretation result is not valid JSON: {err}") from err


def decode_result(payload: Optional[str], cardinality: Cardinality) -> DecodedResult:
    """Decode an interpretation payload according to the query cardinality.

    Returns ``None`` when the interpreter found nothing: a blank payload, a
    missing or null answer, or an answer without entries. Single captures are
    read from the top-level object, multi and any captures from the object or
    array stored under the generated query key. Any captures are keyed by
    their position (``"0"``, ``"1"``, ...).
    """
    if cardinality not in (Cardinality.SINGLE, Cardinality.MULTI, Cardinality.ANY):
        raise FluentQueryError("Query type is invalid")
    if payload is None or not payload.strip():
        return None

    document = _parse_payload(payload)
    if document is None:
        return None
    if not isinstance(document, dict):
        raise JsonError("interpretation result must be a JSON object")

    if cardinality is Cardinality.SINGLE:
        entries: Mapping[str, Any] = document
    else:
        content = document.get(GENERATED_SCRIPT_QUERY)
        if content is None:
            return None
        if cardinality is Cardinality.MULTI:
            if not isinstance(content, dict):
                raise JsonError("a multi capture result must be a JSON object")
            entries = content
        else:
            if not isinstance(content, list):
                raise JsonError("an any capture result must be a JSON array")
            entries = {str(idx): value for idx, value in enumerate(content)}

    decoded = {str(key): _coerce_string(value, str(key)) for key, value in entries.items()}
    if not decoded:
        return None
    return decoded


def _normalize_max_steps(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError("max_steps must be a non-negative integer")
    return value


def _normalize_text_type_registry(names: Optional[Sequence[str]]) -> Optional[FrozenSet[str]]:
    if names is None:
        return None
    if isinstance(names, str) or not isinstance(names, Sequence):
        raise TypeError("text_types must be a sequence of category names")
    registry = set()
    for name in names:
        if not isinstance(name, str) or not name.strip():
            raise ValueError("registered text types must be non-empty strings")
        registry.add(name)
    return frozenset(registry)


_DEFAULT_OPTIONS: Dict[str, Any] = {
    "max_steps": 6,
    "strict_cardinality": False,
    "text_types": None,
}


def _normalize_options(options: Mapping[str, Any]) -> Dict[str, Any]:
    unknown = sorted(set(options) - set(_DEFAULT_OPTIONS))
    if unknown:
        raise TypeError(f"unknown document option(s): {', '.join(unknown)}")
    merged = dict(_DEFAULT_OPTIONS)
    merged.update(options)
    merged["max_steps"] = _normalize_max_steps(merged["max_steps"])
    if not isinstance(merged["strict_cardinality"], bool):
        raise TypeError("strict_cardinality must be a boolean")
    merged["text_types"] = _normalize_text_type_registry(merged["text_types"])
    return merged


def _or(values: Sequence[str]) -> str:
    return "||".join(values)


def _normalize_texts(values: Sequence[str], ctx: str) -> List[str]:
    texts: List[str] = []
    for value in values:
        if not isinstance(value, str):
            raise TypeError(f"{ctx} requires string values")
        texts.append(value)
    return texts


class FluentQuery:
    """Chainable builder for a single interpreter script.

    Every chained call appends to the script of this very instance and
    returns it; a builder serves one chain and is executed once.
    """

    def __init__(
        self,
        interpreter: PageInterpreter,
        page: Any,
        *,
        max_steps: int = 6,
        strict_cardinality: bool = False,
        text_types: Optional[Sequence[str]] = None,
        document: Optional["Document"] = None,
    ):
        if not callable(getattr(interpreter, "interpret", None)):
            raise TypeError("interpreter must provide an interpret(page, script) method")
        self._interpreter = interpreter
        self._page = page
        self._document = document
        self._max_steps = _normalize_max_steps(max_steps)
        self._strict = bool(strict_cardinality)
        self._text_types = _normalize_text_type_registry(text_types)
        self._script = f"{GENERATED_SCRIPT_QUERY}:"
        self._cardinality = Cardinality.NONE
        self._executed = False

    @property
    def script(self) -> str:
        return self._script

    @property
    def cardinality(self) -> Cardinality:
        return self._cardinality

    def _append(self, token: str) -> "FluentQuery":
        if self._executed:
            raise RuntimeError("builder already executed")
        self._script += " " + token
        return self

    def _set_cardinality(self, kind: str) -> None:
        previous = self._cardinality
        self._cardinality = next_cardinality(kind, previous, strict=self._strict)
        if previous is not Cardinality.NONE and previous is not self._cardinality:
            logger.debug("cardinality overwritten: %s -> %s", previous.value, self._cardinality.value)

    def _categories(self, value: TextTypeInput) -> List[str]:
        names = normalize_text_types(value)
        registry = self._text_types
        if registry is not None:
            for name in names:
                if not is_known_text_type(name) and name not in registry:
                    raise ValueError(f"Unknown text type '{name}'")
        return names

    # Traversal

    def up(self) -> "FluentQuery":
        return self._append("Up")

    def down(self) -> "FluentQuery":
        return self._append("Down")

    def left(self) -> "FluentQuery":
        return self._append("Left")

    def right(self) -> "FluentQuery":
        return self._append("Right")

    def move(self, direction: DirectionInput) -> "FluentQuery":
        return self._append(normalize_direction(direction).value)

    # Matching and capturing

    def match(self, text_types: TextTypeInput, *match_texts: str) -> "FluentQuery":
        categories = self._categories(text_types)
        texts = _normalize_texts(match_texts, "match()")
        if texts:
            return self._append(_or([f"{category}({_or(texts)})" for category in categories]))
        return self._append(_or(categories))

    def capture(self, text_types: TextTypeInput) -> Optional[str]:
        """Capture a single value and run the query right away."""
        categories = self._categories(text_types)
        self._set_cardinality(_CAPTURE)
        self._append(f"[{_or(categories)}]")
        return self._execute_single()

    def capture_as(self, text_types: TextTypeInput, property_name: str) -> "FluentQuery":
        """Capture a value under ``property_name`` as part of a multi capture."""
        if not isinstance(property_name, str) or not property_name.strip():
            raise FluentQueryError(
                "The specified pattern has multiple captures, a property name must be "
                "specified when capturing more than one value."
            )
        categories = self._categories(text_types)
        self._set_cardinality(_CAPTURE_AS)
        return self._append(f"'{property_name}': [{_or(categories)}]")

    def capture_multiple(self, transform: Callable[["FluentQuery"], "FluentQuery"]) -> DecodedResult:
        """Run ``transform`` on this builder and execute it as a multi capture."""
        if not callable(transform):
            raise TypeError("capture_multiple() requires a callable")
        query = transform(self)
        if not isinstance(query, FluentQuery):
            raise TypeError("capture_multiple() transform must return the query builder")
        if query.cardinality is not Cardinality.MULTI:
            raise FluentQueryError("A multi capture query needs to have multiple captures specified")
        return query.execute()

    def right_down_search(self, max_steps: int) -> "FluentQuery":
        return self._append(f"RD {_normalize_max_steps(max_steps)}")

    def find_value_for_label(
        self,
        *labels: str,
        text_type: TextTypeInput = TextType.TEXT,
        max_steps: Optional[int] = None,
    ) -> Optional[str]:
        """Find the value closest to the right of or below one of ``labels``."""
        label_texts = self._label_texts(labels, "find_value_for_label()")
        steps = self._max_steps if max_steps is None else _normalize_max_steps(max_steps)
        categories = self._categories(text_type)
        self._set_cardinality(_LABEL)
        self._append(f"Text({_or(label_texts)}) RD {steps} [{_or(categories)}]")
        return self._execute_single()

    def get_value_at_label(
        self,
        direction: DirectionInput,
        *labels: str,
        text_type: TextTypeInput = TextType.TEXT,
    ) -> Optional[str]:
        """Read the value one step in ``direction`` from one of ``labels``."""
        label_texts = self._label_texts(labels, "get_value_at_label()")
        step = normalize_direction(direction)
        categories = self._categories(text_type)
        self._set_cardinality(_LABEL)
        self._append(f"Text({_or(label_texts)}) {step.value} [{_or(categories)}]")
        return self._execute_single()

    def get_any(self, text_types: TextTypeInput) -> List[Optional[str]]:
        """Capture every match in order; JSON nulls in the answer stay ``None``."""
        categories = self._categories(text_types)
        self._set_cardinality(_ANY)
        self._append(f"Any [{_or(categories)}]")
        result = self.execute()
        if result is None:
            return []
        return list(result.values())

    # Tables and page regions

    def table(self, schema: Optional[TableSchema] = None) -> "FluentQuery":
        """Start a table pattern, optionally declaring every column at once."""
        columns = normalize_table_schema(schema) if schema is not None else None
        self._append("Table")
        if columns:
            for name, column in columns.items():
                self.table_column(name, column["text_type"], *column["labels"])
        return self

    def table_column(self, column_name: str, column_text_type: TextTypeInput, *labels: str) -> "FluentQuery":
        if not isinstance(column_name, str) or not column_name.strip():
            raise ValueError("table_column() requires a non-empty column name")
        categories = self._categories(column_text_type)
        if len(categories) != 1:
            raise ValueError("table_column() accepts exactly one text type")
        label_texts = _normalize_texts(labels, "table_column()")
        return self._append(f"'{column_name}': [{categories[0]}({_or(label_texts)})]")

    def subset(self, *subsets: Subset) -> "FluentQuery":
        if not subsets:
            raise ValueError("subset() requires at least one region")
        regions: List[str] = []
        for region in subsets:
            if not isinstance(region, Subset):
                raise TypeError("subset() requires Subset values")
            regions.append(str(region))
        return self._append(f"Subset({', '.join(regions)})")

    # Execution

    def execute(self) -> DecodedResult:
        if self._cardinality is Cardinality.NONE:
            raise FluentQueryError("Query includes no capture tokens. Nothing to query for.")
        if self._document is not None:
            self._document._assert_open()
        self._append(";")
        self._executed = True

        logger.debug("interpreting script %r as %s capture", self._script, self._cardinality.value)
        raw = self._interpreter.interpret(self._page, self._script)
        try:
            payload = to_json_payload(raw, self._script)
        except UnicodeDecodeError as err:
            raise JsonError(f"interpretation result is not valid UTF-8: {err}") from err
        if payload is None or not payload.strip():
            logger.debug("interpreter returned no result")
            return None
        result = decode_result(payload, self._cardinality)
        if result is None:
            logger.debug("interpretation result holds no captured values")
        return result

    def _execute_single(self) -> Optional[str]:
        result = self.execute()
        if not result:
            return None
        return next(iter(result.values()))

    def _label_texts(self, labels: Sequence[str], ctx: str) -> List[str]:
        texts = _normalize_texts(labels, ctx)
        if not texts:
            raise ValueError(f"{ctx} requires at least one label")
        return texts


class Document:
    """Analyzed page paired with the interpreter that can query it."""

    def __init__(self, page: Any, interpreter: PageInterpreter, **options: Any):
        if not callable(getattr(interpreter, "interpret", None)):
            raise TypeError("interpreter must provide an interpret(page, script) method")
        self._page = page
        self._interpreter = interpreter
        self._options = _normalize_options(options)
        self._closed = False

    @classmethod
    def open(cls, page: Any, interpreter: PageInterpreter, **options: Any) -> "Document":
        return cls(page, interpreter, **options)

    @property
    def page(self) -> Any:
        return self._page

    @property
    def options(self) -> Dict[str, Any]:
        return dict(self._options)

    def close(self) -> None:
        """Release the page; later queries raise ClosedError.

        Calling close() more than once is a no-op.
        """
        if self._closed:
            return
        self._closed = True
        self._page = None

    @property
    def is_closed(self) -> bool:
        return self._closed

    def _assert_open(self) -> None:
        if self._closed:
            raise ClosedError("document is closed")

    def __enter__(self) -> "Document":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def with_text_types(self, names: Optional[Sequence[str]]) -> "Document":
        self._assert_open()
        self._options["text_types"] = _normalize_text_type_registry(names)
        return self

    def query(self) -> FluentQuery:
        self._assert_open()
        text_types = self._options["text_types"]
        return FluentQuery(
            self._interpreter,
            self._page,
            max_steps=self._options["max_steps"],
            strict_cardinality=self._options["strict_cardinality"],
            text_types=sorted(text_types) if text_types is not None else None,
            document=self,
        )


def open_document(page: Any, interpreter: PageInterpreter, **options: Any) -> Document:
    """Convenience helper mirroring Document.open."""
    return Document.open(page, interpreter, **options)
