"""Page interpreter capability and raw payload conversion."""

from __future__ import annotations

import json
from typing import Any, List, Mapping, Optional

from typing_extensions import Protocol, runtime_checkable

# Query name every generated script is declared under; the interpreter reports
# the answer of the script under this key.
GENERATED_SCRIPT_QUERY = "GeneratedScriptQuery"


@runtime_checkable
class PageInterpreter(Protocol):
    """Anything able to run a script against an analyzed page."""

    def interpret(self, page: Any, script: str) -> Any:
        ...


@runtime_checkable
class ConvertibleResult(Protocol):
    def convert_to_json(self, script: str) -> Optional[str]:
        ...


def to_json_payload(raw: Any, script: str) -> Optional[str]:
    """Turn whatever the interpreter returned into JSON text.

    Strings pass through, bytes are decoded as UTF-8, mappings are serialized
    and interpretation results that know how to render themselves are asked
    to do so for ``script``.
    """
    if raw is None:
        return None
    if isinstance(raw, str):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw).decode("utf-8")
    if isinstance(raw, Mapping):
        return json.dumps(dict(raw))
    if isinstance(raw, ConvertibleResult):
        converted = raw.convert_to_json(script)
        if converted is not None and not isinstance(converted, str):
            raise TypeError("convert_to_json() must return a string or None")
        return converted
    raise TypeError(f"unsupported interpretation result type: {type(raw)!r}")


class CannedInterpreter:
    """Interpreter double that answers every script with a fixed payload.

    Scripts it receives are kept in ``scripts`` so callers can inspect what
    the builder produced.
    """

    def __init__(self, payload: Any = None):
        self.payload = payload
        self.scripts: List[str] = []

    def interpret(self, page: Any, script: str) -> Any:
        self.scripts.append(script)
        return self.payload
