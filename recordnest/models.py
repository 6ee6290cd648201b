from __future__ import annotations

import re
import string
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, PrivateAttr, model_validator

from .normalize import TRANSFORMS
from .rules import (
    DEFAULT_COMBINED_NAME_KEY,
    DEFAULT_FIRST_NAME_KEY,
    DEFAULT_LAST_NAME_KEY,
)


class EntityKind(str, Enum):
    PERSON = "person"
    GENERIC = "generic"


class _RuleBase(BaseModel):
    path: List[str] = Field(default_factory=list)
    append: bool = False
    transform: Optional[str] = None
    drop: bool = False

    @model_validator(mode="after")
    def _check_path(self):
        if not self.drop and not self.path:
            raise ValueError("a rule needs a non-empty path unless it drops the key")
        if any(segment == "" for segment in self.path):
            raise ValueError("path segments must not be empty")
        if self.transform is not None and self.transform not in TRANSFORMS:
            raise ValueError(f"unknown value transform {self.transform!r}")
        return self


class ExactRule(_RuleBase):
    kind: Literal["exact"] = "exact"
    key: str


class PatternRule(_RuleBase):
    kind: Literal["pattern"] = "pattern"
    pattern: str

    _compiled: Any = PrivateAttr(default=None)

    @model_validator(mode="after")
    def _compile(self):
        try:
            compiled = re.compile(self.pattern)
        except re.error as exc:
            raise ValueError(f"pattern {self.pattern!r} does not compile: {exc}") from exc

        for segment in self.path:
            for _, field_name, _, _ in string.Formatter().parse(segment):
                if field_name is None:
                    continue
                if field_name.isdigit():
                    if int(field_name) > compiled.groups:
                        raise ValueError(
                            f"path segment {segment!r} references group {field_name} "
                            f"but {self.pattern!r} has {compiled.groups}"
                        )
                elif field_name not in compiled.groupindex:
                    raise ValueError(
                        f"path segment {segment!r} references unknown group {field_name!r}"
                    )

        self._compiled = compiled
        return self

    @property
    def regex(self) -> "re.Pattern[str]":
        if self._compiled is None:
            self._compiled = re.compile(self.pattern)
        return self._compiled


Rule = Annotated[Union[ExactRule, PatternRule], Field(discriminator="kind")]


class NameFields(BaseModel):
    combined: str = DEFAULT_COMBINED_NAME_KEY
    first: str = DEFAULT_FIRST_NAME_KEY
    last: str = DEFAULT_LAST_NAME_KEY


class RuleSet(BaseModel):
    garbage: List[str] = Field(default_factory=list)
    rules: List[Rule] = Field(default_factory=list)
    names: NameFields = Field(default_factory=NameFields)
    person_modules: List[str] = Field(default_factory=list)


class SerializeRequest(BaseModel):
    record: Dict[str, Any]
    entity_kind: Optional[EntityKind] = None
    module_name: Optional[str] = None
    hide_empty: bool = True


class SerializeReport(BaseModel):
    fields_in: int = 0
    fields_out: int = 0
    dropped: List[str] = Field(default_factory=list)
    entity_kind: EntityKind
    deterministic: bool = True


class SerializeResponse(BaseModel):
    document: Dict[str, Any]
    sha256: str
    report: SerializeReport


class HealthResponse(BaseModel):
    ok: bool = True
