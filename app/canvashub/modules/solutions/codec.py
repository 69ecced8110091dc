"""
Transforms applied to a solution's `json` payload before it is stored.

- strip:     drop every double-quote character. Lossy; `{"a":1}` becomes `{a:1}`.
             Kept as the default because existing canvas documents were saved this way.
- normalize: parse the payload, unwrap one level of double encoding
             (a JSON string holding JSON), store the compact re-serialization.
- raw:       store the payload as received.
"""
from __future__ import annotations

import json

from app.canvashub.config import SOLUTION_JSON_MODES


class SolutionJsonError(ValueError):
    pass


def strip_quotes(raw: str) -> str:
    return raw.replace('"', "")


def normalize_json(raw: str) -> str:
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise SolutionJsonError(f"Solution JSON is invalid: {e}") from e
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as e:
            raise SolutionJsonError(f"Solution JSON is invalid after unwrapping: {e}") from e
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def transform_solution_json(raw: str, mode: str = "strip") -> str:
    if mode == "strip":
        return strip_quotes(raw)
    if mode == "normalize":
        return normalize_json(raw)
    if mode == "raw":
        return raw
    raise ValueError(f"Unknown solution JSON mode {mode!r}; expected one of {', '.join(SOLUTION_JSON_MODES)}.")
