"""Error hierarchy.

``BindingError`` subclasses are raised while a binding is generated and
block the registration from being produced. ``ScriptError`` subclasses are
raised by generated adapters at call time and are catchable by whatever
drives the script runtime.
"""

from __future__ import annotations

from typing import Any


# ── Generation-time errors ───────────────────────────────────────


class BindingError(Exception):
    """A binding could not be generated."""

    def __init__(self, type_name: str, message: str):
        self.type_name = type_name
        super().__init__(f"{type_name}: {message}")


class UnsupportedShape(BindingError):
    """The type (or one of its variants) has no supported field shape."""


class UnsupportedType(BindingError):
    """A field, parameter or return type has no script conversion."""

    def __init__(self, type_name: str, member: str, annotation: Any, reason: str = ""):
        self.member = member
        self.annotation = annotation
        detail = reason or f"no script conversion for {annotation!r}"
        super().__init__(type_name, f"{member}: {detail}")


class DuplicateName(BindingError):
    """Two callables were registered under the same name."""

    def __init__(self, type_name: str, name: str):
        self.name = name
        super().__init__(type_name, f"duplicate method name {name!r}")


class MissingReceiver(BindingError):
    """A method does not take the bound type as its first parameter."""

    def __init__(self, type_name: str, method: str, reason: str):
        self.method = method
        super().__init__(type_name, f"method {method!r}: {reason}")


class MissingOperatorCapability(BindingError):
    """The native type does not implement the operator it binds."""

    def __init__(self, type_name: str, op: str, capability: str, variant: str = ""):
        self.op = op
        self.capability = capability
        where = f" (variant {variant})" if variant else ""
        super().__init__(
            type_name, f"operator {op} requires {capability}{where}"
        )


class DuplicateCapability(BindingError):
    """Two directives produce the same capability."""

    def __init__(self, type_name: str, capability: str):
        self.capability = capability
        super().__init__(type_name, f"capability {capability!r} declared more than once")


class IncompatibleComposition(BindingError):
    """Sealed and fragment composition modes were mixed on one capability axis."""


class DuplicateRegistration(BindingError):
    """A native type was registered with the runtime twice."""

    def __init__(self, type_name: str):
        super().__init__(type_name, "already registered")


# ── Runtime errors ───────────────────────────────────────────────


class ScriptError(Exception):
    """Catchable error surfaced to the running script."""


class ConversionError(ScriptError):
    """A value could not cross the script boundary."""


class FieldLookupError(ScriptError):
    """Base class for field-lookup failures."""


class NoSuchField(FieldLookupError):
    def __init__(self, type_name: str, key: Any):
        self.type_name = type_name
        self.key = key
        super().__init__(f"{type_name} has no field {key!r}")


class CallError(ScriptError):
    """Base class for method and operator call failures."""


class ArityMismatch(CallError):
    def __init__(self, method: str, expected: int, actual: int):
        self.method = method
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{method}: expected {expected} argument(s), got {actual}"
        )


class TypeMismatch(CallError):
    """An argument could not be converted to the declared parameter type.

    ``index`` is the 0-based position among the non-receiver arguments, or
    ``None`` when the receiver itself is wrong.
    """

    def __init__(self, method: str, index: int | None, expected: str, actual: str):
        self.method = method
        self.index = index
        self.expected = expected
        self.actual = actual
        where = "receiver" if index is None else f"argument {index}"
        super().__init__(f"{method}: {where} expected {expected}, got {actual}")


class OperandTypeMismatch(CallError):
    def __init__(self, op: str, type_name: str, actual: str):
        self.op = op
        self.type_name = type_name
        self.actual = actual
        super().__init__(f"{op}: expected {type_name} operand, got {actual}")


class BorrowConflict(CallError):
    def __init__(self, type_name: str, reason: str):
        self.type_name = type_name
        super().__init__(f"{type_name}: {reason}")


class NoSuchMethod(CallError):
    def __init__(self, type_name: str, name: str):
        self.type_name = type_name
        self.name = name
        super().__init__(f"{type_name} has no method {name!r}")
