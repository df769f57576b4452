"""Extract the JSON document carried by a stream-framed (SSE) response body.

Grammar::

    body   := line (eol line)*          eol := "\\r\\n" | "\\r" | "\\n"
    dataln := "data:" [" "] json-text

Lines are scanned in order and the first ``dataln`` wins.  JSON text must be
finite: ``NaN`` and ``Infinity`` are rejected.
"""

from __future__ import annotations

import json
import re
from typing import Any

from ..types import DecodeFailure

DATA_MARKER = "data:"
_RAW_PREVIEW = 500
_EOL_RE = re.compile(r"\r\n|\r|\n")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-finite number {name} is not allowed")


def loads_json(text: str | bytes) -> Any:
    """Strict ``json.loads``: only finite numbers, bounded nesting.

    Raises ``ValueError`` for every rejected document.
    """
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except RecursionError:
        raise ValueError("JSON nesting too deep") from None


def _error_text(e: ValueError) -> str:
    return e.msg if isinstance(e, json.JSONDecodeError) else str(e)


def _data_remainder(line: str) -> str | None:
    """Return the text after the data marker, or None for a non-data line."""
    if not line.startswith(DATA_MARKER):
        return None
    rest = line[len(DATA_MARKER):]
    if rest.startswith(" "):
        rest = rest[1:]
    return rest


def decode_stream_payload(raw_text: str) -> Any | DecodeFailure:
    """Return the embedded JSON value, or a :class:`DecodeFailure`."""
    for line in _EOL_RE.split(raw_text):
        remainder = _data_remainder(line)
        if remainder is None:
            continue
        try:
            return loads_json(remainder)
        except ValueError as e:
            return DecodeFailure(
                kind="parse",
                message=f"Invalid JSON in SSE data line: {_error_text(e)}. Raw: {remainder[:_RAW_PREVIEW]}",
            )

    return DecodeFailure(
        kind="decode",
        message=f"No SSE data line found. Raw: {raw_text[:_RAW_PREVIEW]}",
    )
