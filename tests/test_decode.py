import json
from typing import Any, Optional

import pytest

from documentlab.query import (
    Cardinality,
    FluentQueryError,
    JsonError,
    decode_result,
    next_cardinality,
)

CAPTURING = [Cardinality.SINGLE, Cardinality.MULTI, Cardinality.ANY]


def wrapped(content: Any) -> str:
    return json.dumps({"GeneratedScriptQuery": content})


def test_single_decodes_top_level_object() -> None:
    assert decode_result('{"x": "7"}', Cardinality.SINGLE) == {"x": "7"}


def test_multi_decodes_nested_object() -> None:
    payload = wrapped({"a": "1", "b": "2"})
    assert decode_result(payload, Cardinality.MULTI) == {"a": "1", "b": "2"}


def test_any_keys_values_by_position() -> None:
    decoded = decode_result(wrapped(["p", "q", "r"]), Cardinality.ANY)
    assert decoded == {"0": "p", "1": "q", "2": "r"}
    assert list(decoded.values()) == ["p", "q", "r"]


@pytest.mark.parametrize("payload", [None, "", "   ", "\n\t"])
@pytest.mark.parametrize("cardinality", CAPTURING)
def test_blank_payload_is_no_result(payload: Optional[str], cardinality: Cardinality) -> None:
    assert decode_result(payload, cardinality) is None


@pytest.mark.parametrize(
    "payload, cardinality",
    [
        ("{}", Cardinality.SINGLE),
        ("null", Cardinality.SINGLE),
        (wrapped({}), Cardinality.MULTI),
        (wrapped(None), Cardinality.MULTI),
        ('{"Other": {"a": "1"}}', Cardinality.MULTI),
        (wrapped([]), Cardinality.ANY),
        ("{}", Cardinality.ANY),
    ],
)
def test_empty_answers_are_no_result(payload: str, cardinality: Cardinality) -> None:
    assert decode_result(payload, cardinality) is None


def test_unset_cardinality_is_invalid() -> None:
    with pytest.raises(FluentQueryError, match="Query type is invalid"):
        decode_result('{"x": "7"}', Cardinality.NONE)


def test_scalars_are_coerced_to_strings() -> None:
    decoded = decode_result('{"n": 7, "f": 1.5, "yes": true, "no": false, "missing": null}', Cardinality.SINGLE)
    assert decoded == {"n": "7", "f": "1.5", "yes": "True", "no": "False", "missing": None}


@pytest.mark.parametrize(
    "payload, cardinality",
    [
        ("{broken", Cardinality.SINGLE),
        ('["a"]', Cardinality.SINGLE),
        ('{"x": {"nested": "1"}}', Cardinality.SINGLE),
        (wrapped(["a", "b"]), Cardinality.MULTI),
        (wrapped({"a": "1"}), Cardinality.ANY),
        (wrapped([["a"]]), Cardinality.ANY),
    ],
)
def test_unexpected_shapes_raise_json_error(payload: str, cardinality: Cardinality) -> None:
    with pytest.raises(JsonError):
        decode_result(payload, cardinality)


def test_permissive_transitions() -> None:
    assert next_cardinality("capture", Cardinality.NONE) is Cardinality.SINGLE
    assert next_cardinality("capture", Cardinality.MULTI) is Cardinality.MULTI
    assert next_cardinality("capture", Cardinality.ANY) is Cardinality.ANY
    assert next_cardinality("capture_as", Cardinality.SINGLE) is Cardinality.MULTI
    assert next_cardinality("capture_as", Cardinality.ANY) is Cardinality.MULTI
    assert next_cardinality("label", Cardinality.MULTI) is Cardinality.SINGLE
    assert next_cardinality("any", Cardinality.SINGLE) is Cardinality.ANY


@pytest.mark.parametrize(
    "kind, current",
    [
        ("capture", Cardinality.MULTI),
        ("capture", Cardinality.ANY),
        ("capture_as", Cardinality.SINGLE),
        ("label", Cardinality.ANY),
        ("any", Cardinality.MULTI),
    ],
)
def test_strict_transitions_reject_conflicts(kind: str, current: Cardinality) -> None:
    with pytest.raises(FluentQueryError, match="Cannot combine"):
        next_cardinality(kind, current, strict=True)


def test_strict_transitions_allow_matching_state() -> None:
    assert next_cardinality("capture", Cardinality.SINGLE, strict=True) is Cardinality.SINGLE
    assert next_cardinality("capture_as", Cardinality.MULTI, strict=True) is Cardinality.MULTI
    assert next_cardinality("any", Cardinality.NONE, strict=True) is Cardinality.ANY


def test_unknown_operation_kind() -> None:
    with pytest.raises(ValueError, match="unknown capture operation"):
        next_cardinality("table", Cardinality.NONE)
