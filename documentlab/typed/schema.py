"""Text categories, directions, page subsets and table schema helpers."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Mapping, Sequence, Union

from typing_extensions import TypedDict


class TextType(str, Enum):
    """Known text categories understood by the page interpreter."""

    TEXT = "Text"
    NUMBER = "Number"
    DATE = "Date"
    AMOUNT = "Amount"
    PERCENTAGE = "Percentage"
    EMAIL = "Email"
    WEB_ADDRESS = "WebAddress"
    PHONE_NUMBER = "PhoneNumber"
    POSTAL_CODE = "PostalCode"
    TOWN = "Town"
    COUNTRY = "Country"
    STREET_ADDRESS = "StreetAddress"
    INVOICE_NUMBER = "InvoiceNumber"
    IBAN = "Iban"
    BIC = "Bic"

    def __str__(self) -> str:
        return self.value


class Direction(str, Enum):
    """Relative step on the analyzed page grid."""

    UP = "Up"
    DOWN = "Down"
    LEFT = "Left"
    RIGHT = "Right"

    def __str__(self) -> str:
        return self.value


TextTypeInput = Union[TextType, str, Sequence[Union[TextType, str]]]
DirectionInput = Union[Direction, str]


class Subset:
    """Opaque page region restriction; only its string form reaches the script."""

    __slots__ = ("_region",)

    def __init__(self, region: str):
        if not isinstance(region, str) or not region.strip():
            raise ValueError("subset region must be a non-empty string")
        self._region = region

    def __str__(self) -> str:
        return self._region

    def __repr__(self) -> str:
        return f"Subset({self._region!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Subset) and other._region == self._region

    def __hash__(self) -> int:
        return hash(self._region)


class TableColumnSchema(TypedDict):
    """Column definition: the validating text type and its header labels."""

    text_type: Union[TextType, str]
    labels: Sequence[str]


TableSchema = Mapping[str, TableColumnSchema]


class NormalizedColumn(TypedDict):
    text_type: str
    labels: List[str]


_KNOWN_TEXT_TYPES = frozenset(member.value for member in TextType)


def is_known_text_type(name: str) -> bool:
    return name in _KNOWN_TEXT_TYPES


def normalize_text_types(value: TextTypeInput) -> List[str]:
    """Flatten a category argument into the list of category names.

    Accepts a single TextType, a custom category string, or a sequence mixing
    both.
    """
    if isinstance(value, TextType):
        return [value.value]
    if isinstance(value, str):
        if not value.strip():
            raise ValueError("text type must be a non-empty string")
        return [value]
    if isinstance(value, Sequence):
        names: List[str] = []
        for idx, entry in enumerate(value):
            if isinstance(entry, TextType):
                names.append(entry.value)
            elif isinstance(entry, str) and entry.strip():
                names.append(entry)
            else:
                raise ValueError(f"text type at position {idx} must be a TextType or non-empty string")
        if not names:
            raise ValueError("at least one text type is required")
        return names
    raise TypeError("text types must be a TextType, a string, or a sequence of them")


def normalize_direction(value: DirectionInput) -> Direction:
    if isinstance(value, Direction):
        return value
    if isinstance(value, str):
        for member in Direction:
            if member.value.lower() == value.strip().lower():
                return member
    raise ValueError(f"invalid direction: {value!r}")


def normalize_table_schema(schema: TableSchema) -> Dict[str, NormalizedColumn]:
    if not isinstance(schema, Mapping):
        raise TypeError("table schema must be a mapping of column name -> column definition")
    if not schema:
        raise ValueError("table schema requires at least one column")
    normalized: Dict[str, NormalizedColumn] = {}
    for name, definition in schema.items():
        if not isinstance(name, str) or not name.strip():
            raise ValueError("table column names must be non-empty strings")
        if not isinstance(definition, Mapping):
            raise TypeError(f"definition for column '{name}' must be a mapping")
        text_types = normalize_text_types(definition.get("text_type", TextType.TEXT))
        if len(text_types) != 1:
            raise ValueError(f"column '{name}' must declare exactly one text type")
        labels = definition.get("labels") or []
        if isinstance(labels, str):
            labels = [labels]
        label_list: List[str] = []
        for label in labels:
            if not isinstance(label, str) or not label.strip():
                raise ValueError(f"labels for column '{name}' must be non-empty strings")
            label_list.append(label)
        if not label_list:
            raise ValueError(f"column '{name}' requires at least one header label")
        normalized[name] = {"text_type": text_types[0], "labels": label_list}
    return normalized
