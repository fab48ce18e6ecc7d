"""Reference host runtime: registrations, conversion and dispatch entry points.

This is the seam the generated adapters plug into: it owns the
registration table, converts native values into script values, and routes
field, method and operator slots to whichever registration an operand
carries. It does not parse or evaluate script source.
"""

from __future__ import annotations

import logging
import weakref
from typing import Any, Callable

from . import constants
from .binding_types import DEFAULT_CONFIG, BindingConfig
from .convert import script_kind
from .directives import OperatorTag
from .errors import (
    ConversionError,
    DuplicateRegistration,
    NoSuchMethod,
    ScriptError,
)
from .registration import OperatorAdapter, RegistrationObject
from .userdata import UserData

logger = logging.getLogger(__name__)

_PRIMITIVE_TYPES = (bool, int, float, str)


class PrimitiveOperators:
    """Operator evaluation for operands that carry no registration."""

    BINOP_TABLE: dict[str, Callable[[Any, Any], Any]] = {
        constants.SYMBOL_ADD: lambda a, b: a + b,
        constants.SYMBOL_SUB: lambda a, b: a - b,
        constants.SYMBOL_MUL: lambda a, b: a * b,
        constants.SYMBOL_DIV: lambda a, b: a / b,
        constants.SYMBOL_MOD: lambda a, b: a % b,
        constants.SYMBOL_BAND: lambda a, b: a & b,
        constants.SYMBOL_BOR: lambda a, b: a | b,
        constants.SYMBOL_BXOR: lambda a, b: a ^ b,
        constants.SYMBOL_SHL: lambda a, b: a << b,
        constants.SYMBOL_SHR: lambda a, b: a >> b,
        constants.SYMBOL_EQ: lambda a, b: a == b,
        constants.SYMBOL_LT: lambda a, b: a < b,
        constants.SYMBOL_LE: lambda a, b: a <= b,
    }

    UNOP_TABLE: dict[str, Callable[[Any], Any]] = {
        constants.SYMBOL_NEG: lambda a: -a,
        constants.SYMBOL_BNOT: lambda a: ~a,
    }

    @classmethod
    def eval_binop(cls, op: str, lhs: Any, rhs: Any) -> Any:
        fn = cls.BINOP_TABLE[op]
        try:
            return fn(lhs, rhs)
        except (TypeError, ValueError, ZeroDivisionError, OverflowError) as exc:
            raise ScriptError(
                f"attempt to perform {op!r} on {script_kind(lhs)} and {script_kind(rhs)}"
            ) from exc

    @classmethod
    def eval_unop(cls, op: str, operand: Any) -> Any:
        fn = cls.UNOP_TABLE[op]
        try:
            return fn(operand)
        except TypeError as exc:
            raise ScriptError(
                f"attempt to perform {op!r} on {script_kind(operand)}"
            ) from exc


_BINARY_TAGS: dict[str, OperatorTag] = {
    tag.symbol: tag
    for tag in OperatorTag
    if tag.arity == 2 and tag != OperatorTag.INDEX
}

_UNARY_TAGS: dict[str, OperatorTag] = {
    constants.SYMBOL_NEG: OperatorTag.NEGATE,
    constants.SYMBOL_BNOT: OperatorTag.BIT_NOT,
}

# a > b is b < a; a >= b is b <= a
_SWAPPED: dict[str, str] = {
    constants.SYMBOL_GT: constants.SYMBOL_LT,
    constants.SYMBOL_GE: constants.SYMBOL_LE,
}


class ScriptRuntime:
    """Registration table plus value conversion and slot dispatch."""

    def __init__(self, config: BindingConfig | None = None):
        self.config = config or DEFAULT_CONFIG
        self.globals: dict[str, Any] = {}
        self._registrations: dict[type, RegistrationObject] = {}
        # One live handle per native object, so aliases share borrow state.
        self._handles: weakref.WeakValueDictionary[int, UserData] = (
            weakref.WeakValueDictionary()
        )

    # ── Registration API ────────────────────────────────────────

    def register(self, native_type: type, registration: RegistrationObject) -> None:
        if native_type in self._registrations:
            raise DuplicateRegistration(native_type.__name__)
        self._registrations[native_type] = registration
        logger.debug(
            "Registered %s (%d method(s), %d operator(s))",
            registration.type_name,
            len(registration.methods),
            len(registration.operators),
        )

    def is_registered(self, native_type: type) -> bool:
        return native_type in self._registrations

    def registration_for(self, value: Any) -> RegistrationObject | None:
        for klass in type(value).__mro__:
            registration = self._registrations.get(klass)
            if registration is not None:
                return registration
        return None

    # ── Conversion ──────────────────────────────────────────────

    def to_script(self, value: Any) -> Any:
        """Convert a native value into a script value."""
        if value is None or isinstance(value, UserData) or type(value) in _PRIMITIVE_TYPES:
            return value
        registration = self.registration_for(value)
        if registration is None:
            if isinstance(value, _PRIMITIVE_TYPES):
                return value
            raise ConversionError(
                f"no registration for native type {type(value).__name__}"
            )
        handle = self._handles.get(id(value))
        if handle is None or not handle.holds(value):
            handle = UserData(value, registration)
            self._handles[id(value)] = handle
        return handle

    def extract(self, value: Any, native_type: type) -> Any:
        """Convert a script value back into a native value of *native_type*.

        A handle must not be mutably borrowed. The value is returned without
        holding a borrow.
        """
        if isinstance(value, UserData):
            if value.is_instance(native_type):
                return value.share()
        elif isinstance(value, native_type):
            return value
        raise ConversionError(
            f"expected {native_type.__name__}, got {script_kind(value)}"
        )

    def set_global(self, name: str, value: Any) -> Any:
        script_value = self.to_script(value)
        self.globals[name] = script_value
        return script_value

    def get_global(self, name: str) -> Any:
        return self.globals.get(name)

    # ── Slot dispatch ───────────────────────────────────────────

    def index(self, target: Any, key: Any) -> Any:
        if not isinstance(target, UserData):
            raise ScriptError(f"attempt to index a {script_kind(target)} value")
        lookup = target.registration.index_slot()
        if lookup is None:
            logger.debug("No index slot on %s", target.type_name)
            raise ScriptError(f"attempt to index a {target.type_name} value")
        return lookup(self, target, key)

    def call_method(self, target: Any, name: str, *args: Any) -> Any:
        if not isinstance(target, UserData):
            raise ScriptError(
                f"attempt to call method {name!r} on a {script_kind(target)} value"
            )
        adapter = target.registration.methods.get(name)
        if adapter is None:
            logger.debug("No method %r on %s", name, target.type_name)
            raise NoSuchMethod(target.type_name, name)
        return adapter(self, target, list(args))

    def _operator_slot(self, tag: OperatorTag, *operands: Any) -> OperatorAdapter | None:
        for operand in operands:
            if isinstance(operand, UserData):
                adapter = operand.registration.operators.get(tag)
                if adapter is not None:
                    return adapter
        return None

    def binop(self, symbol: str, lhs: Any, rhs: Any) -> Any:
        """Evaluate ``lhs <symbol> rhs``; left operand's slot is tried first."""
        if symbol in _SWAPPED:
            symbol = _SWAPPED[symbol]
            lhs, rhs = rhs, lhs
        negate = symbol == constants.SYMBOL_NE
        if negate:
            symbol = constants.SYMBOL_EQ
        tag = _BINARY_TAGS.get(symbol)
        if tag is None:
            raise ScriptError(f"unknown binary operator {symbol!r}")

        if not isinstance(lhs, UserData) and not isinstance(rhs, UserData):
            result = PrimitiveOperators.eval_binop(symbol, lhs, rhs)
        elif tag == OperatorTag.EQUAL:
            result = self._equal(lhs, rhs)
        else:
            adapter = self._operator_slot(tag, lhs, rhs)
            if adapter is None:
                logger.debug("No %s slot on either operand", tag.value)
                raise ScriptError(
                    f"attempt to perform {tag.value} on {script_kind(lhs)} and {script_kind(rhs)}"
                )
            result = adapter(self, lhs, rhs)
        return not result if negate else result

    def _equal(self, lhs: Any, rhs: Any) -> bool:
        if lhs is rhs:
            return True
        if not (isinstance(lhs, UserData) and isinstance(rhs, UserData)):
            return False
        adapter = self._operator_slot(OperatorTag.EQUAL, lhs, rhs)
        if adapter is None:
            return False
        return adapter(self, lhs, rhs)

    def unop(self, symbol: str, operand: Any) -> Any:
        if symbol == constants.SYMBOL_NOT:
            return operand is None or operand is False
        tag = _UNARY_TAGS.get(symbol)
        if tag is None:
            raise ScriptError(f"unknown unary operator {symbol!r}")
        if not isinstance(operand, UserData):
            return PrimitiveOperators.eval_unop(symbol, operand)
        adapter = operand.registration.operators.get(tag)
        if adapter is None:
            raise ScriptError(f"attempt to perform {tag.value} on {operand.type_name}")
        return adapter(self, operand)
