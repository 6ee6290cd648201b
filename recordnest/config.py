"""
Rule set loading.

Rule sets are YAML documents validated into a `RuleSet`. Any problem with the
document (unreadable file, bad YAML, schema violation, pattern that does not
compile) is reported as a `RuleConfigError` at load time, never per record.

Environment variable:
    RECORDNEST_RULES_FILE - path to a rule set replacing the packaged default.
"""
from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import ValidationError

from .errors import RuleConfigError
from .models import RuleSet
from .rules import DEFAULT_RULES_FILE, RULES_FILE_ENV

_log = logging.getLogger("recordnest.config")


def parse_ruleset(data: Any, source: str = "<memory>") -> RuleSet:
    """Validate an already-parsed document into a `RuleSet`."""
    if not isinstance(data, dict):
        raise RuleConfigError(
            f"rule set {source} must be a mapping, got {type(data).__name__}"
        )
    try:
        ruleset = RuleSet.model_validate(data)
    except ValidationError as exc:
        raise RuleConfigError(f"invalid rule set {source}: {exc}") from exc

    _log.info(
        "Loaded %d rules and %d garbage keys from %s",
        len(ruleset.rules), len(ruleset.garbage), source,
    )
    return ruleset


def loads_ruleset(text: str, source: str = "<memory>") -> RuleSet:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise RuleConfigError(f"rule set {source} is not valid YAML: {exc}") from exc
    return parse_ruleset(data, source)


def _resolve_path(path: Optional[Union[str, Path]]) -> Path:
    if path is not None:
        return Path(path)
    env = os.environ.get(RULES_FILE_ENV)
    if env:
        return Path(env)
    return DEFAULT_RULES_FILE


def load_ruleset(path: Optional[Union[str, Path]] = None) -> RuleSet:
    """
    Load a rule set from `path`, `$RECORDNEST_RULES_FILE` or the packaged default.
    """
    resolved = _resolve_path(path)
    try:
        text = resolved.read_text(encoding="utf-8")
    except OSError as exc:
        raise RuleConfigError(f"cannot read rule set {resolved}: {exc}") from exc
    return loads_ruleset(text, str(resolved))


@lru_cache(maxsize=1)
def default_ruleset() -> RuleSet:
    return load_ruleset()
