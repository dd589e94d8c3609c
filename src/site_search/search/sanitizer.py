"""Field normalization applied to feed documents before they enter the store.

Every function here is total: malformed input degrades to an empty value
instead of raising, so one bad record never stops a build.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
import json
import re
from typing import Any


# C0 controls except tab/newline/carriage-return, plus the C1 block
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x80-\x9f]")
_ISO_DATE = re.compile(r"([0-9]{4})-([0-9]{2})-([0-9]{2})")

EMPTY_ARRAY = "[]"
# orjson, which renders API responses, only encodes signed 64-bit integers
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


def sanitize(raw: Any) -> str:
    """Return ``raw`` as valid UTF-8 text with control characters removed.

    Bytes are decoded with replacement, lone surrogates (possible in strings
    produced by ``json.loads``) are replaced, and ``None`` becomes ``""``.
    The function is idempotent.
    """
    if raw is None:
        return ""
    if isinstance(raw, (bytes, bytearray)):
        text = bytes(raw).decode("utf-8", errors="replace")
    else:
        text = raw if isinstance(raw, str) else str(raw)
    text = text.encode("utf-8", errors="replace").decode("utf-8")
    return _CONTROL_CHARS.sub("", text)


def bounded_int(value: int) -> int | str:
    """Keep integers the response encoder can emit; wider ones become digit strings."""
    if INT64_MIN <= value <= INT64_MAX:
        return value
    return str(value)


def _clean_item(item: Any) -> Any:
    if isinstance(item, str):
        return sanitize(item)
    if isinstance(item, int) and not isinstance(item, bool):
        return bounded_int(item)
    if isinstance(item, (list, tuple)):
        return [_clean_item(value) for value in item]
    if isinstance(item, dict):
        return {key: _clean_item(value) for key, value in item.items()}
    return item


def _canonical(items: Sequence[Any]) -> str:
    try:
        cleaned = [_clean_item(item) for item in items]
        return json.dumps(cleaned, ensure_ascii=False, separators=(",", ":"), allow_nan=False, default=str)
    except (TypeError, ValueError, RecursionError):
        # circular containers and similar oddities
        return EMPTY_ARRAY


def sanitize_structured(raw: Any) -> str:
    """Serialize a tags/categories value as a canonical JSON array string.

    ``None`` gives ``[]``; a list or tuple is re-serialized in order; a string
    holding a JSON array is re-serialized; a non-empty string that is not JSON
    is wrapped as a single-element array. Anything else gives ``[]``.
    """
    if raw is None:
        return EMPTY_ARRAY
    if isinstance(raw, (list, tuple)):
        return _canonical(raw)
    if isinstance(raw, (bytes, bytearray)):
        raw = sanitize(raw)
    if not isinstance(raw, str):
        return EMPTY_ARRAY

    text = sanitize(raw)
    try:
        decoded = json.loads(text)
    except (ValueError, RecursionError):
        if text.strip():
            return _canonical([text])
        return EMPTY_ARRAY
    if isinstance(decoded, list):
        return _canonical(decoded)
    return EMPTY_ARRAY


def validate_date(value: Any) -> bool:
    """Return True when ``value`` is a ``YYYY-MM-DD`` string naming a real calendar day."""
    if not isinstance(value, str):
        return False
    match = _ISO_DATE.fullmatch(value)
    if match is None:
        return False
    year, month, day = (int(part) for part in match.groups())
    try:
        date(year, month, day)
    except ValueError:
        return False
    return True
