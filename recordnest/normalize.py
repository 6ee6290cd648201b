"""
Per-value cleanup applied before a field is placed in the output tree.

Responsibilities:
- bytes decoding (best-effort detection via charset-normalizer)
- HTML entity decoding + Unicode NFC normalization + trimming
- composite value suppression
- empty value suppression
- phone number sanitization
"""

from __future__ import annotations

import html
import numbers
import re
import unicodedata
from typing import Any, Callable, Dict

from charset_normalizer import from_bytes


class _Drop:
    """Marker returned when a value must not reach the output tree."""

    def __repr__(self) -> str:
        return "DROP"


DROP = _Drop()

_NON_DIGITS = re.compile(r"[^0-9]")


def is_scalar(value: Any) -> bool:
    if value is None or isinstance(value, (str, bool)):
        return True
    return isinstance(value, numbers.Number) and not isinstance(value, complex)


def decode_bytes(raw: bytes) -> str:
    """
    Decode bytes to text.

    Rules:
    - Valid UTF-8 (with or without BOM) is always decoded as UTF-8.
    - Otherwise detect encoding best-effort via charset-normalizer.
    - If nothing is detected, fall back to UTF-8 with replacement characters.
    """
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        pass

    match = from_bytes(raw).best()
    if match is not None:
        return str(match)
    return raw.decode("utf-8", errors="replace")


def normalize_text(text: str) -> str:
    # unescape until stable so a second pass changes nothing
    unescaped = html.unescape(text)
    while unescaped != text:
        text = unescaped
        unescaped = html.unescape(text)
    text = unicodedata.normalize("NFC", text)
    return text.strip()


def is_empty(value: Any) -> bool:
    return value is None or value == ""


def normalize_value(value: Any, hide_empty: bool = True) -> Any:
    """Return the cleaned value, or `DROP` when it must be left out."""
    if isinstance(value, (bytes, bytearray)):
        value = decode_bytes(bytes(value))

    if not is_scalar(value):
        # never stringify nested records, lists or handles
        return DROP

    if isinstance(value, str):
        value = normalize_text(value)

    if hide_empty and is_empty(value):
        return DROP

    return value


def sanitize_phone(value: Any) -> Any:
    """Strip everything but digits and a leading `+`."""
    if value is None:
        return None
    text = str(value).strip()
    lead = "+" if text.startswith("+") else ""
    return lead + _NON_DIGITS.sub("", text)


TRANSFORMS: Dict[str, Callable[[Any], Any]] = {
    "phone": sanitize_phone,
}
