"""
Deterministic restructuring constants.

This file exists to make the fixed parts of the rule set explicit.
"""

from pathlib import Path

DEFAULT_RULES_FILE = Path(__file__).with_name("default_rules.yml")
RULES_FILE_ENV = "RECORDNEST_RULES_FILE"

DEFAULT_COMBINED_NAME_KEY = "name"
DEFAULT_FIRST_NAME_KEY = "first_name"
DEFAULT_LAST_NAME_KEY = "last_name"

NAME_SUBTREE = "name"
ENTITY_KIND_FIELD = "entity_kind"
MODULE_NAME_FIELD = "module_name"
