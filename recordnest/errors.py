class RecordNestError(Exception):
    """Base class for errors raised by recordnest."""


class UnsupportedRecordError(RecordNestError, TypeError):
    """The record is neither a mapping nor an object with fields."""


class RuleConfigError(RecordNestError, ValueError):
    """The rule set could not be loaded or validated."""
