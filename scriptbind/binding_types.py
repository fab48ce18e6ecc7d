"""Binding data types (pure data, no business logic)."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ValueKind(str, Enum):
    """Script-side value kinds a native type can convert to."""

    NIL = "nil"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    NUMBER = "number"
    STRING = "string"
    USERDATA = "userdata"


class FieldKind(str, Enum):
    """Field shape of a single variant."""

    UNIT = "unit"
    POSITIONAL = "positional"
    NAMED = "named"


class ReceiverKind(str, Enum):
    SHARED = "shared"
    MUTABLE = "mutable"


class Capability(str, Enum):
    """Capability axis a fragment contributes to."""

    INDEX = "index"
    METHODS = "methods"
    OPERATORS = "operators"


class CompositionMode(Enum):
    SEALED = "sealed"
    FRAGMENT = "fragment"


@dataclass(frozen=True)
class BindingConfig:
    """Groups binding generation and runtime configuration."""

    expose_private_fields: bool = False
    integral_floats_as_integers: bool = True
    integers_as_numbers: bool = True
    numbers_as_strings: bool = False


DEFAULT_CONFIG = BindingConfig()
