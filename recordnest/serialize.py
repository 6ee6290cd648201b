"""
Flat record -> nested document.

One linear pass over the record's fields (filter, normalize, resolve, write)
followed by a single name reconciliation step.
"""

from __future__ import annotations

import hashlib
import json
import logging
import math
import re
from functools import lru_cache
from numbers import Number
from typing import Any, Dict, List, Optional, Tuple

from .config import default_ruleset
from .engine import RuleEngine
from .models import EntityKind, RuleSet
from .names import resolve_name
from .normalize import DROP, is_empty, is_scalar, normalize_value
from .records import detect_entity_kind, record_fields
from .tree import build_tree

_log = logging.getLogger("recordnest.serialize")

_NUMERIC = re.compile(r"^-?(0|[1-9][0-9]*)(\.[0-9]+)?([eE][+-]?[0-9]+)?$")


@lru_cache(maxsize=1)
def default_engine() -> RuleEngine:
    return RuleEngine(default_ruleset())


def _engine_for(ruleset: Optional[RuleSet]) -> RuleEngine:
    if ruleset is None:
        return default_engine()
    return RuleEngine(ruleset)


def restructure(
    record: Any,
    entity_kind: Optional[EntityKind] = None,
    hide_empty: bool = True,
    ruleset: Optional[RuleSet] = None,
    engine: Optional[RuleEngine] = None,
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Restructure a record and report what happened to its fields.

    Returns (tree, report) where report holds the counts of fields read and
    written, the dropped keys and the entity kind used. Pass either a
    `ruleset` or a prebuilt `engine`, not both.
    """
    if engine is not None and ruleset is not None:
        raise ValueError("pass either a ruleset or an engine, not both")

    fields = record_fields(record)
    engine = engine or _engine_for(ruleset)

    if entity_kind is None:
        entity_kind = detect_entity_kind(record, engine.ruleset.person_modules)
    else:
        entity_kind = EntityKind(entity_kind)

    entries: List[Tuple[Tuple[str, ...], Any, bool]] = []
    dropped: List[str] = []

    for key, raw in fields.items():
        if engine.excludes(key):
            dropped.append(key)
            continue

        try:
            value = normalize_value(raw, hide_empty)
        except (TypeError, ValueError) as exc:
            _log.warning("Could not normalize field %r, keeping raw value: %s", key, exc)
            value = raw if is_scalar(raw) else DROP
        if value is DROP:
            dropped.append(key)
            continue

        destination = engine.resolve(key)
        if destination is None:
            dropped.append(key)
            continue

        try:
            value = destination.apply(value)
        except (TypeError, ValueError) as exc:
            _log.warning("Could not transform field %r, keeping value as is: %s", key, exc)
        if hide_empty and is_empty(value):
            dropped.append(key)
            continue

        _log.debug("Field %r -> %s", key, ".".join(destination.path))
        entries.append((destination.path, value, destination.append))

    tree = resolve_name(entity_kind, fields, build_tree(entries), engine.ruleset.names, hide_empty)

    report = {
        "fields_in": len(fields),
        "fields_out": len(entries),
        "dropped": dropped,
        "entity_kind": entity_kind,
    }
    return tree, report


def to_tree(
    record: Any,
    entity_kind: Optional[EntityKind] = None,
    hide_empty: bool = True,
    ruleset: Optional[RuleSet] = None,
) -> Dict[str, Any]:
    """Convert a record to a nested, standardised, cleaned dict."""
    tree, _ = restructure(record, entity_kind, hide_empty, ruleset)
    return tree


def _numeric(value: str) -> Any:
    if not _NUMERIC.match(value):
        return value
    if value.lstrip("-").isdigit():
        return int(value)
    number = float(value)
    return number if math.isfinite(number) else value


def numeric_check(tree: Any) -> Any:
    """Return a copy of `tree` with number-looking strings turned into numbers.

    Strings with a leading `+` or a leading zero stay strings, so phone numbers
    and postcodes survive.
    """
    if isinstance(tree, dict):
        return {k: numeric_check(v) for k, v in tree.items()}
    if isinstance(tree, list):
        return [numeric_check(v) for v in tree]
    if isinstance(tree, str):
        return _numeric(tree)
    return tree


def _plain_number(value: Any) -> Any:
    """`json.dumps` fallback for numbers it cannot encode (Decimal, Fraction)."""
    if isinstance(value, Number):
        try:
            if value == int(value):
                return int(value)
            return float(value)
        except (ValueError, OverflowError):
            return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode(tree: Dict[str, Any], pretty: bool = False, numbers: bool = True) -> str:
    if numbers:
        tree = numeric_check(tree)
    if pretty:
        return json.dumps(tree, ensure_ascii=False, indent=4, default=_plain_number)
    return json.dumps(tree, ensure_ascii=False, separators=(",", ":"), default=_plain_number)


def serialize(
    record: Any,
    entity_kind: Optional[EntityKind] = None,
    hide_empty: bool = True,
    pretty: bool = False,
    numbers: bool = True,
    ruleset: Optional[RuleSet] = None,
) -> str:
    """Convert a record to a nested, standardised, cleaned JSON string."""
    return encode(to_tree(record, entity_kind, hide_empty, ruleset), pretty, numbers)


def sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()
