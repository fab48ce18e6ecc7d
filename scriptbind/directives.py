"""Binding directive vocabulary.

Directives are what an annotation layer hands the generators: which
capability to produce for a type and in which composition mode. They are
plain pydantic models so they can also be validated from structured data
(see ``parse_directives``).
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Callable, Iterable, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from . import constants


class OperatorTag(str, Enum):
    """Closed set of script-visible operator slots."""

    ADD = "Add"
    SUB = "Sub"
    MUL = "Mul"
    DIV = "Div"
    MOD = "Mod"
    BIT_AND = "BitAnd"
    BIT_OR = "BitOr"
    BIT_XOR = "BitXor"
    SHIFT_LEFT = "ShiftLeft"
    SHIFT_RIGHT = "ShiftRight"
    EQUAL = "Equal"
    LESS_THAN = "LessThan"
    LESS_OR_EQUAL = "LessOrEqual"
    NEGATE = "Negate"
    BIT_NOT = "BitNot"
    INDEX = "Index"

    @property
    def arity(self) -> int:
        return 1 if self in _UNARY_TAGS else 2

    @property
    def capability(self) -> str | None:
        """Dunder method the native type must implement, None for Index."""
        return _CAPABILITIES[self]

    @property
    def symbol(self) -> str:
        return _SYMBOLS[self]


_UNARY_TAGS = frozenset({OperatorTag.NEGATE, OperatorTag.BIT_NOT})

_CAPABILITIES: dict[OperatorTag, str | None] = {
    OperatorTag.ADD: "__add__",
    OperatorTag.SUB: "__sub__",
    OperatorTag.MUL: "__mul__",
    OperatorTag.DIV: "__truediv__",
    OperatorTag.MOD: "__mod__",
    OperatorTag.BIT_AND: "__and__",
    OperatorTag.BIT_OR: "__or__",
    OperatorTag.BIT_XOR: "__xor__",
    OperatorTag.SHIFT_LEFT: "__lshift__",
    OperatorTag.SHIFT_RIGHT: "__rshift__",
    OperatorTag.EQUAL: "__eq__",
    OperatorTag.LESS_THAN: "__lt__",
    OperatorTag.LESS_OR_EQUAL: "__le__",
    OperatorTag.NEGATE: "__neg__",
    OperatorTag.BIT_NOT: "__invert__",
    OperatorTag.INDEX: None,
}

_SYMBOLS: dict[OperatorTag, str] = {
    OperatorTag.ADD: constants.SYMBOL_ADD,
    OperatorTag.SUB: constants.SYMBOL_SUB,
    OperatorTag.MUL: constants.SYMBOL_MUL,
    OperatorTag.DIV: constants.SYMBOL_DIV,
    OperatorTag.MOD: constants.SYMBOL_MOD,
    OperatorTag.BIT_AND: constants.SYMBOL_BAND,
    OperatorTag.BIT_OR: constants.SYMBOL_BOR,
    OperatorTag.BIT_XOR: constants.SYMBOL_BXOR,
    OperatorTag.SHIFT_LEFT: constants.SYMBOL_SHL,
    OperatorTag.SHIFT_RIGHT: constants.SYMBOL_SHR,
    OperatorTag.EQUAL: constants.SYMBOL_EQ,
    OperatorTag.LESS_THAN: constants.SYMBOL_LT,
    OperatorTag.LESS_OR_EQUAL: constants.SYMBOL_LE,
    OperatorTag.NEGATE: constants.SYMBOL_NEG,
    OperatorTag.BIT_NOT: constants.SYMBOL_BNOT,
    OperatorTag.INDEX: constants.SYMBOL_INDEX,
}


# ── Directives ───────────────────────────────────────────────────


class _Directive(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


class IndexCapability(_Directive):
    """Sealed field lookup."""

    kind: Literal["index"] = "index"


class IndexFragment(_Directive):
    """Field lookup as a fragment the caller attaches explicitly."""

    kind: Literal["index_fragment"] = "index_fragment"


class NoIndex(_Directive):
    """Always-miss field lookup; satisfies the index slot without exposing fields."""

    kind: Literal["no_index"] = "no_index"


class MethodSet(_Directive):
    """Block of native functions to expose as script methods."""

    kind: Literal["methods"] = "methods"
    functions: tuple[Any, ...] = ()
    sealed: bool = False

    @field_validator("functions")
    @classmethod
    def _check_callables(cls, value: tuple[Any, ...]) -> tuple[Any, ...]:
        for func in value:
            if not callable(func) and not isinstance(func, (staticmethod, classmethod)):
                raise ValueError(f"{func!r} is not callable")
        return value


class OperatorBinding(_Directive):
    kind: Literal["operator"] = "operator"
    op: OperatorTag


BindingDirective = Annotated[
    Union[IndexCapability, IndexFragment, NoIndex, MethodSet, OperatorBinding],
    Field(discriminator="kind"),
]

_DIRECTIVE = TypeAdapter(BindingDirective)


def parse_directives(raw: Iterable[Any]) -> list[BindingDirective]:
    """Validate a list of directive models or dicts (``{"kind": ...}``).

    Model instances pass through unchanged; dicts are validated against the
    discriminated union and raise ``pydantic.ValidationError`` on bad input.
    """
    return [
        item if isinstance(item, _Directive) else _DIRECTIVE.validate_python(item)
        for item in raw
    ]


def method_set(*functions: Callable, sealed: bool = False) -> MethodSet:
    return MethodSet(functions=functions, sealed=sealed)


def operator_bindings(*ops: OperatorTag | str) -> list[OperatorBinding]:
    return [OperatorBinding(op=OperatorTag(op)) for op in ops]


def mutates(func: Callable) -> Callable:
    """Mark a method as needing exclusive access to its receiver."""
    setattr(func, constants.MUTATES_ATTR, True)
    return func
