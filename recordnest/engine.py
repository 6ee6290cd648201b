"""
Field routing: decides where each field of a flat record lands.

The engine is built once from a `RuleSet` and is read-only afterwards, so a
single instance can be shared by any number of concurrent serializations.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple

from .models import ExactRule, PatternRule, RuleSet
from .normalize import TRANSFORMS

_log = logging.getLogger("recordnest.engine")


class GarbageFilter:
    """Fixed set of field names that never reach the output."""

    def __init__(self, keys: Iterable[str]):
        self._keys: FrozenSet[str] = frozenset(keys)

    def excludes(self, key: str) -> bool:
        return key in self._keys

    __contains__ = excludes

    def __len__(self) -> int:
        return len(self._keys)


@dataclass(frozen=True)
class Destination:
    path: Tuple[str, ...]
    append: bool = False
    transform: Optional[Callable[[Any], Any]] = None

    def apply(self, value: Any) -> Any:
        if self.transform is None:
            return value
        return self.transform(value)


def _destination(rule, path: Tuple[str, ...]) -> Destination:
    transform = TRANSFORMS[rule.transform] if rule.transform else None
    return Destination(path=path, append=rule.append, transform=transform)


class RuleEngine:
    def __init__(self, ruleset: RuleSet):
        self.ruleset = ruleset
        self.garbage = GarbageFilter(ruleset.garbage)
        self.name_key = ruleset.names.combined

        self._exact: Dict[str, ExactRule] = {}
        self._patterns: List[PatternRule] = []
        for rule in ruleset.rules:
            if isinstance(rule, ExactRule):
                # first declaration wins
                self._exact.setdefault(rule.key, rule)
            else:
                self._patterns.append(rule)

        _log.debug(
            "Rule engine ready: %d exact rules, %d pattern rules, %d garbage keys",
            len(self._exact), len(self._patterns), len(self.garbage),
        )

    def excludes(self, key: str) -> bool:
        return self.garbage.excludes(key)

    def resolve(self, key: str) -> Optional[Destination]:
        """
        Return where `key` goes in the output tree, or None when it is dropped.

        Order: combined name marker (always dropped, the name resolver owns it),
        exact rules, pattern rules in declaration order, then identity.
        """
        if key == self.name_key:
            return None

        rule = self._exact.get(key)
        if rule is not None:
            if rule.drop:
                return None
            return _destination(rule, tuple(rule.path))

        for pattern_rule in self._patterns:
            match = pattern_rule.regex.search(key)
            if match is None:
                continue
            if pattern_rule.drop:
                return None
            groups = (match.group(0),) + match.groups(default="")
            path = tuple(
                segment.format(*groups, **match.groupdict(default=""))
                for segment in pattern_rule.path
            )
            return _destination(pattern_rule, path)

        return Destination(path=(key,))
