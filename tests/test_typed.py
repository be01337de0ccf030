import json
from typing import Any

import pytest

from documentlab.interpreter import CannedInterpreter, to_json_payload
from documentlab.typed import (
    Direction,
    Subset,
    TableSchema,
    TextType,
    is_known_text_type,
    normalize_direction,
    normalize_table_schema,
    normalize_text_types,
)


def test_text_types_render_as_category_names() -> None:
    assert str(TextType.WEB_ADDRESS) == "WebAddress"
    assert f"[{TextType.AMOUNT}]" == "[Amount]"
    assert is_known_text_type("Number")
    assert not is_known_text_type("OrderNumber")


def test_normalize_text_types_accepts_mixed_forms() -> None:
    assert normalize_text_types(TextType.DATE) == ["Date"]
    assert normalize_text_types("OrderNumber") == ["OrderNumber"]
    assert normalize_text_types([TextType.NUMBER, "OrderNumber"]) == ["Number", "OrderNumber"]
    assert normalize_text_types(("Text",)) == ["Text"]


@pytest.mark.parametrize("value", ["", "  ", [], ["Text", ""], [3]])
def test_normalize_text_types_rejects_blank(value: Any) -> None:
    with pytest.raises(ValueError):
        normalize_text_types(value)


def test_normalize_text_types_rejects_other_types() -> None:
    with pytest.raises(TypeError):
        normalize_text_types(7)  # type: ignore[arg-type]


def test_normalize_direction() -> None:
    assert normalize_direction(Direction.RIGHT) is Direction.RIGHT
    assert normalize_direction("down") is Direction.DOWN
    assert normalize_direction(" Up ") is Direction.UP
    assert str(Direction.LEFT) == "Left"
    with pytest.raises(ValueError):
        normalize_direction("sideways")


def test_subset_is_opaque_value() -> None:
    top = Subset("Top")
    assert str(top) == "Top"
    assert top == Subset("Top")
    assert len({top, Subset("Top"), Subset("Bottom")}) == 2
    with pytest.raises(ValueError):
        Subset("  ")


def test_normalize_table_schema() -> None:
    schema: TableSchema = {
        "Item": {"text_type": TextType.TEXT, "labels": ["Item", "Description"]},
        "Price": {"text_type": "Amount", "labels": "Price"},  # type: ignore[typeddict-item]
    }
    assert normalize_table_schema(schema) == {
        "Item": {"text_type": "Text", "labels": ["Item", "Description"]},
        "Price": {"text_type": "Amount", "labels": ["Price"]},
    }


@pytest.mark.parametrize(
    "schema, error",
    [
        ({}, ValueError),
        ([("Item", {})], TypeError),
        ({"": {"text_type": "Text", "labels": ["Item"]}}, ValueError),
        ({"Item": "Text"}, TypeError),
        ({"Item": {"text_type": ["Text", "Number"], "labels": ["Item"]}}, ValueError),
        ({"Item": {"text_type": "Text", "labels": []}}, ValueError),
        ({"Item": {"text_type": "Text", "labels": [""]}}, ValueError),
    ],
)
def test_normalize_table_schema_errors(schema: Any, error: type) -> None:
    with pytest.raises(error):
        normalize_table_schema(schema)


def test_to_json_payload_variants() -> None:
    assert to_json_payload(None, "s;") is None
    assert to_json_payload('{"x": "1"}', "s;") == '{"x": "1"}'
    assert to_json_payload(b'{"x": "1"}', "s;") == '{"x": "1"}'
    assert json.loads(to_json_payload({"x": "1"}, "s;")) == {"x": "1"}


def test_to_json_payload_asks_result_to_convert() -> None:
    class Interpretation:
        def __init__(self) -> None:
            self.scripts = []

        def convert_to_json(self, script: str) -> str:
            self.scripts.append(script)
            return "{}"

    result = Interpretation()
    assert to_json_payload(result, "Q: [Text] ;") == "{}"
    assert result.scripts == ["Q: [Text] ;"]


def test_to_json_payload_rejects_unknown_results() -> None:
    with pytest.raises(TypeError, match="unsupported interpretation result"):
        to_json_payload(42, "s;")


def test_canned_interpreter_records_scripts() -> None:
    interpreter = CannedInterpreter("{}")
    assert interpreter.interpret(object(), "a;") == "{}"
    assert interpreter.interpret(object(), "b;") == "{}"
    assert interpreter.scripts == ["a;", "b;"]
