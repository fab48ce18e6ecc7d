"""Operator Binding Generator: OperatorTag -> dispatcher over native dunders.

Each tag is checked at generation time against the native capability it
needs. Dispatch takes shared borrows of the operands, applies the native
operator left-then-right and converts the result back to a script value.
"""

from __future__ import annotations

import logging
import operator
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Iterable

from .convert import script_kind
from .descriptor_types import TypeDescriptor
from .directives import OperatorTag
from .errors import DuplicateCapability, MissingOperatorCapability, OperandTypeMismatch
from .index import build_lookup
from .registration import OperatorAdapter
from .userdata import UserData

if TYPE_CHECKING:
    from .runtime import ScriptRuntime

logger = logging.getLogger(__name__)


def _partial_compare(dunder: str) -> Callable[[Any, Any], bool]:
    """Ordering that treats an incomparable pair (NotImplemented) as False."""

    def compare(lhs: Any, rhs: Any) -> bool:
        result = getattr(lhs, dunder)(rhs)
        if result is NotImplemented:
            return False
        return bool(result)

    return compare


NATIVE_BINARY: dict[OperatorTag, Callable[[Any, Any], Any]] = {
    OperatorTag.ADD: operator.add,
    OperatorTag.SUB: operator.sub,
    OperatorTag.MUL: operator.mul,
    OperatorTag.DIV: operator.truediv,
    OperatorTag.MOD: operator.mod,
    OperatorTag.BIT_AND: operator.and_,
    OperatorTag.BIT_OR: operator.or_,
    OperatorTag.BIT_XOR: operator.xor,
    OperatorTag.SHIFT_LEFT: operator.lshift,
    OperatorTag.SHIFT_RIGHT: operator.rshift,
    OperatorTag.EQUAL: lambda a, b: bool(operator.eq(a, b)),
    OperatorTag.LESS_THAN: _partial_compare("__lt__"),
    OperatorTag.LESS_OR_EQUAL: _partial_compare("__le__"),
}

NATIVE_UNARY: dict[OperatorTag, Callable[[Any], Any]] = {
    OperatorTag.NEGATE: operator.neg,
    OperatorTag.BIT_NOT: operator.invert,
}

_COMPARISONS = frozenset(
    {OperatorTag.EQUAL, OperatorTag.LESS_THAN, OperatorTag.LESS_OR_EQUAL}
)


def _has_capability(cls: type, dunder: str) -> bool:
    impl = getattr(cls, dunder, None)
    if impl is None:
        return False
    # Enum members are singletons, so identity equality is meaningful.
    if dunder == "__eq__" and issubclass(cls, Enum):
        return True
    return impl is not getattr(object, dunder, None)


def check_capability(descriptor: TypeDescriptor, tag: OperatorTag) -> None:
    """Raise ``MissingOperatorCapability`` unless every variant supports *tag*."""
    dunder = tag.capability
    if dunder is None:
        return
    for variant in descriptor.variants:
        if not _has_capability(variant.native_class, dunder):
            raise MissingOperatorCapability(
                descriptor.name,
                tag.value,
                dunder,
                variant.tag if descriptor.is_union and variant.tag else "",
            )


def _require_operand(descriptor: TypeDescriptor, tag: OperatorTag, operand: Any) -> UserData:
    if isinstance(operand, UserData) and operand.is_instance(descriptor.native):
        return operand
    raise OperandTypeMismatch(tag.value, descriptor.name, script_kind(operand))


def _binary_dispatcher(descriptor: TypeDescriptor, tag: OperatorTag):
    native_op = NATIVE_BINARY[tag]
    comparison = tag in _COMPARISONS

    def dispatch(runtime: ScriptRuntime, lhs: Any, rhs: Any) -> Any:
        left = _require_operand(descriptor, tag, lhs)
        right = _require_operand(descriptor, tag, rhs)
        with left.borrow() as a, right.borrow() as b:
            if not (descriptor.owns(a) and descriptor.owns(b)):
                raise OperandTypeMismatch(
                    tag.value, descriptor.name, f"{type(a).__name__}, {type(b).__name__}"
                )
            result = native_op(a, b)
        if comparison:
            return result
        return runtime.to_script(result)

    return dispatch


def _unary_dispatcher(descriptor: TypeDescriptor, tag: OperatorTag):
    native_op = NATIVE_UNARY[tag]

    def dispatch(runtime: ScriptRuntime, operand: Any) -> Any:
        handle = _require_operand(descriptor, tag, operand)
        with handle.borrow() as value:
            if not descriptor.owns(value):
                raise OperandTypeMismatch(tag.value, descriptor.name, type(value).__name__)
            result = native_op(value)
        return runtime.to_script(result)

    return dispatch


def generate_operator(descriptor: TypeDescriptor, tag: OperatorTag) -> OperatorAdapter:
    """Generate the dispatcher for one operator slot."""
    check_capability(descriptor, tag)
    if tag == OperatorTag.INDEX:
        call = build_lookup(descriptor)
    elif tag.arity == 1:
        call = _unary_dispatcher(descriptor, tag)
    else:
        call = _binary_dispatcher(descriptor, tag)
    logger.debug("Generated operator %s for %s", tag.value, descriptor.name)
    return OperatorAdapter(tag=tag, type_name=descriptor.name, call=call)


def generate_operators(
    descriptor: TypeDescriptor, tags: Iterable[OperatorTag]
) -> tuple[OperatorAdapter, ...]:
    """Generate one dispatcher per tag; a repeated tag is ``DuplicateCapability``."""
    seen: set[OperatorTag] = set()
    adapters = []
    for tag in tags:
        if tag in seen:
            raise DuplicateCapability(descriptor.name, tag.value)
        seen.add(tag)
        adapters.append(generate_operator(descriptor, tag))
    logger.info(
        "Generated %d operator(s) for %s: %s",
        len(adapters),
        descriptor.name,
        ", ".join(a.tag.value for a in adapters),
    )
    return tuple(adapters)
