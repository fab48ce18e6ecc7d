"""Value conversion at the script boundary (script -> native direction).

The native -> script direction lives on ``ScriptRuntime.to_script`` because
it needs the runtime's registrations.
"""

from __future__ import annotations

from typing import Any

from .binding_types import BindingConfig, ValueKind
from .descriptor_types import TypeDescriptor, TypeRef
from .errors import TypeMismatch
from .userdata import UserData


def script_kind(value: Any) -> str:
    """Human-readable script kind of *value*, for error messages."""
    if value is None:
        return ValueKind.NIL.value
    if isinstance(value, UserData):
        return value.type_name
    if isinstance(value, bool):
        return ValueKind.BOOLEAN.value
    if isinstance(value, int):
        return ValueKind.INTEGER.value
    if isinstance(value, float):
        return ValueKind.NUMBER.value
    if isinstance(value, str):
        return ValueKind.STRING.value
    return type(value).__name__


def _convert(value: Any, type_ref: TypeRef, config: BindingConfig) -> tuple[bool, Any]:
    kind = type_ref.kind
    if value is None:
        return kind == ValueKind.NIL or type_ref.optional, None
    if isinstance(value, bool):
        return kind == ValueKind.BOOLEAN, value

    if kind == ValueKind.INTEGER:
        if isinstance(value, int):
            return True, value
        if (
            isinstance(value, float)
            and config.integral_floats_as_integers
            and value.is_integer()
        ):
            return True, int(value)
    elif kind == ValueKind.NUMBER:
        if isinstance(value, float):
            return True, value
        if isinstance(value, int) and config.integers_as_numbers:
            return True, float(value)
    elif kind == ValueKind.STRING:
        if isinstance(value, str):
            return True, value
        if isinstance(value, (int, float)) and config.numbers_as_strings:
            return True, str(value)
    elif kind == ValueKind.USERDATA:
        if isinstance(value, UserData) and value.is_instance(type_ref.native):
            return True, value.share()
    return False, None


def from_script(
    value: Any,
    type_ref: TypeRef,
    config: BindingConfig,
    *,
    method: str,
    index: int,
) -> Any:
    """Convert a script argument to the declared native parameter type.

    Raises ``TypeMismatch`` when no conversion applies, and
    ``BorrowConflict`` for a userdata argument that is mutably borrowed.
    """
    ok, native = _convert(value, type_ref, config)
    if not ok:
        raise TypeMismatch(method, index, type_ref.describe(), script_kind(value))
    return native


def require_receiver(receiver: Any, descriptor: TypeDescriptor, method: str) -> UserData:
    if isinstance(receiver, UserData) and receiver.is_instance(descriptor.native):
        return receiver
    raise TypeMismatch(method, None, descriptor.name, script_kind(receiver))
