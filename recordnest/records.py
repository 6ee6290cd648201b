from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping

from .errors import UnsupportedRecordError
from .models import EntityKind
from .rules import ENTITY_KIND_FIELD, MODULE_NAME_FIELD


def record_fields(record: Any) -> Dict[str, Any]:
    """Return the flat field mapping of a record.

    Accepts a mapping, or an object whose public instance attributes are its
    fields. Anything else is rejected before any field is processed.
    """
    if isinstance(record, Mapping):
        return dict(record)
    if isinstance(record, (str, bytes, bytearray)) or not hasattr(record, "__dict__"):
        raise UnsupportedRecordError(
            f"cannot read fields from a {type(record).__name__}; "
            "expected a mapping or an object with attributes"
        )
    return {k: v for k, v in vars(record).items() if not k.startswith("_")}


def detect_entity_kind(record: Any, person_modules: Iterable[str] = ()) -> EntityKind:
    """Classify a record as person-like or generic.

    A class-level `entity_kind` declared on the record type wins; otherwise a
    `module_name` listed in `person_modules` marks the record as person-like.
    """
    declared = None if isinstance(record, Mapping) else getattr(type(record), ENTITY_KIND_FIELD, None)
    if declared is not None:
        try:
            return EntityKind(declared)
        except ValueError:
            raise UnsupportedRecordError(f"unknown entity kind {declared!r}") from None

    if isinstance(record, Mapping):
        module_name = record.get(MODULE_NAME_FIELD)
    else:
        module_name = getattr(record, MODULE_NAME_FIELD, None)
    if isinstance(module_name, str) and module_name in set(person_modules):
        return EntityKind.PERSON
    return EntityKind.GENERIC
