"""Restructure flat records into cleaned, nested JSON documents.

The FastAPI service lives in `recordnest.main`. This package contains pure
functions that:
- filter out garbage fields
- clean values (text, encodings, phone numbers, empties)
- route each field to a path in the output tree via configurable rules
- reconcile the name subtree for person-like and generic records
"""
from .config import default_ruleset, load_ruleset, loads_ruleset
from .engine import Destination, GarbageFilter, RuleEngine
from .errors import RecordNestError, RuleConfigError, UnsupportedRecordError
from .models import EntityKind, ExactRule, PatternRule, RuleSet
from .serialize import encode, restructure, serialize, to_tree

__all__ = [
    "Destination",
    "EntityKind",
    "ExactRule",
    "GarbageFilter",
    "PatternRule",
    "RecordNestError",
    "RuleConfigError",
    "RuleEngine",
    "RuleSet",
    "UnsupportedRecordError",
    "default_ruleset",
    "encode",
    "load_ruleset",
    "loads_ruleset",
    "restructure",
    "serialize",
    "to_tree",
]
