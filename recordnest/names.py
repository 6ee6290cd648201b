"""
Name reconciliation.

Person-like records carry split first/last names while other records carry a
single combined name under the same flattened key space. Per-field rules cannot
tell the two apart, so this step runs once after the tree is built.
"""
from __future__ import annotations

from copy import deepcopy
from typing import Any, Dict, Mapping, Optional

from .models import EntityKind, NameFields
from .normalize import DROP, normalize_value
from .rules import NAME_SUBTREE


def _name_part(record: Mapping[str, Any], key: str, hide_empty: bool) -> Any:
    if key not in record:
        return DROP
    return normalize_value(record[key], hide_empty)


def resolve_name(
    kind: EntityKind,
    record: Mapping[str, Any],
    tree: Dict[str, Any],
    names: Optional[NameFields] = None,
    hide_empty: bool = True,
) -> Dict[str, Any]:
    """Return a copy of `tree` with its name subtree fixed for `kind`."""
    names = names or NameFields()
    out = deepcopy(tree)

    if kind == EntityKind.PERSON:
        subtree = out.get(NAME_SUBTREE)
        subtree = dict(subtree) if isinstance(subtree, dict) else {}
        for leaf, key in (("first", names.first), ("last", names.last)):
            value = _name_part(record, key, hide_empty)
            if value is not DROP:
                subtree[leaf] = value
        if subtree:
            out[NAME_SUBTREE] = subtree
        else:
            out.pop(NAME_SUBTREE, None)
        return out

    combined = _name_part(record, names.combined, hide_empty)
    if combined is DROP:
        out.pop(NAME_SUBTREE, None)
    else:
        out[NAME_SUBTREE] = {"name": combined}
    return out
