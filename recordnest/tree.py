from __future__ import annotations

from typing import Any, Dict, Iterable, Sequence, Tuple


def write_path(tree: Dict[str, Any], path: Sequence[str], value: Any, append: bool = False) -> Dict[str, Any]:
    """Set (or append) a value in a nested dict by path (dict-only traversal).

    Missing levels are created. A scalar sitting where a level is needed is
    replaced by a mapping. Returns `tree`.
    """
    if not path:
        return tree

    current = tree
    for part in path[:-1]:
        nxt = current.get(part)
        if not isinstance(nxt, dict):
            nxt = {}
            current[part] = nxt
        current = nxt

    leaf = path[-1]
    if append:
        existing = current.get(leaf)
        if not isinstance(existing, list):
            existing = []
            current[leaf] = existing
        existing.append(value)
    else:
        current[leaf] = value
    return tree


def build_tree(entries: Iterable[Tuple[Sequence[str], Any, bool]]) -> Dict[str, Any]:
    """Fold `(path, value, append)` entries into a fresh tree, in order."""
    tree: Dict[str, Any] = {}
    for path, value, append in entries:
        write_path(tree, path, value, append)
    return tree
