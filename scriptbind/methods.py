"""Method Binding Generator: native functions -> call adapters.

Each function in a ``MethodSet`` is normalised into a ``MethodSignature``
(receiver kind, typed parameters, return type) and then wrapped in an
adapter that checks arity, borrows the receiver, converts arguments and
converts the result.
"""

from __future__ import annotations

import inspect
import logging
import typing
from typing import TYPE_CHECKING, Any, Callable, Sequence

from . import constants
from .binding_types import DEFAULT_CONFIG, BindingConfig, ReceiverKind
from .convert import from_script, require_receiver
from .descriptor import resolve_type_ref
from .descriptor_types import MethodSignature, ParamDescriptor, TypeDescriptor
from .directives import MethodSet
from .errors import ArityMismatch, DuplicateName, MissingReceiver, UnsupportedType
from .registration import MethodAdapter

if TYPE_CHECKING:
    from .runtime import ScriptRuntime

logger = logging.getLogger(__name__)

_SUPPORTED_PARAM_KINDS = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


def _function_name(func: Any) -> str:
    return getattr(func, "__name__", repr(func))


def _check_receiver(
    name: str,
    first: inspect.Parameter,
    hints: dict[str, Any],
    descriptor: TypeDescriptor,
) -> None:
    if first.kind not in _SUPPORTED_PARAM_KINDS:
        raise MissingReceiver(
            descriptor.name, name, "first parameter must be a positional receiver"
        )
    annotation = hints.get(first.name)
    if annotation is None:
        if first.name != constants.RECEIVER_PARAM_NAME:
            raise MissingReceiver(
                descriptor.name,
                name,
                f"unannotated first parameter must be named "
                f"{constants.RECEIVER_PARAM_NAME!r}, got {first.name!r}",
            )
        return
    if annotation is descriptor.native or annotation is typing.Self:
        return
    raise MissingReceiver(
        descriptor.name,
        name,
        f"first parameter is annotated {annotation!r}, not {descriptor.name}",
    )


def signature_from_function(func: Any, descriptor: TypeDescriptor) -> MethodSignature:
    """Normalise *func* into a MethodSignature for the type in *descriptor*.

    Raises ``MissingReceiver`` when the function does not take the bound
    type as its first parameter, and ``UnsupportedType`` when a parameter
    or the return value has no usable annotation.
    """
    name = _function_name(func)
    if isinstance(func, (staticmethod, classmethod)) or inspect.ismethod(func):
        raise MissingReceiver(descriptor.name, name, "static and class methods have no receiver")

    try:
        hints = typing.get_type_hints(func)
    except (NameError, TypeError) as exc:
        raise UnsupportedType(
            descriptor.name, name, None, f"unresolvable annotations ({exc})"
        ) from exc
    try:
        parameters = list(inspect.signature(func).parameters.values())
    except (TypeError, ValueError) as exc:
        raise MissingReceiver(descriptor.name, name, f"no inspectable signature ({exc})") from exc
    if not parameters:
        raise MissingReceiver(descriptor.name, name, "takes no parameters")

    receiver, rest = parameters[0], parameters[1:]
    _check_receiver(name, receiver, hints, descriptor)

    params = []
    for param in rest:
        member = f"{name}({param.name})"
        if param.kind not in _SUPPORTED_PARAM_KINDS:
            raise UnsupportedType(
                descriptor.name, member, None, f"{param.kind.description} parameters are not supported"
            )
        if param.name not in hints:
            raise UnsupportedType(descriptor.name, member, None, "missing annotation")
        params.append(
            ParamDescriptor(
                name=param.name,
                type_ref=resolve_type_ref(hints[param.name], descriptor.name, member),
            )
        )

    if "return" not in hints:
        raise UnsupportedType(descriptor.name, f"{name}(return)", None, "missing return annotation")
    returns_hint = hints["return"]
    returns = (
        None
        if returns_hint is type(None)
        else resolve_type_ref(returns_hint, descriptor.name, f"{name}(return)")
    )

    mutable = bool(getattr(func, constants.MUTATES_ATTR, False))
    return MethodSignature(
        name=name,
        receiver=ReceiverKind.MUTABLE if mutable else ReceiverKind.SHARED,
        params=tuple(params),
        returns=returns,
        func=func,
    )


def _make_call(
    descriptor: TypeDescriptor, signature: MethodSignature, config: BindingConfig
) -> Callable[[ScriptRuntime, Any, Sequence[Any]], Any]:
    qualified = f"{descriptor.name}.{signature.name}"
    params = signature.params
    func = signature.func
    mutable = signature.receiver == ReceiverKind.MUTABLE

    def call(runtime: ScriptRuntime, receiver: Any, args: Sequence[Any]) -> Any:
        if len(args) != len(params):
            raise ArityMismatch(qualified, len(params), len(args))
        handle = require_receiver(receiver, descriptor, qualified)
        borrow = handle.borrow_mut if mutable else handle.borrow
        with borrow() as value:
            native_args = [
                from_script(arg, param.type_ref, config, method=qualified, index=i)
                for i, (arg, param) in enumerate(zip(args, params))
            ]
            result = func(value, *native_args)
        if signature.returns is None:
            return None
        return runtime.to_script(result)

    return call


def generate_method(
    descriptor: TypeDescriptor, func: Any, config: BindingConfig | None = None
) -> MethodAdapter:
    config = config or DEFAULT_CONFIG
    signature = signature_from_function(func, descriptor)
    logger.debug("Generated method adapter %s.%s", descriptor.name, signature.describe())
    return MethodAdapter(
        name=signature.name,
        arity=len(signature.params),
        receiver=signature.receiver,
        call=_make_call(descriptor, signature, config),
        signature=signature.describe(),
    )


def generate_methods(
    descriptor: TypeDescriptor,
    method_set: MethodSet,
    config: BindingConfig | None = None,
) -> tuple[MethodAdapter, ...]:
    """Generate one call adapter per function in *method_set*.

    Two functions with the same name are a generation-time ``DuplicateName``.
    """
    adapters: dict[str, MethodAdapter] = {}
    for func in method_set.functions:
        adapter = generate_method(descriptor, func, config)
        if adapter.name in adapters:
            raise DuplicateName(descriptor.name, adapter.name)
        adapters[adapter.name] = adapter
    logger.info(
        "Generated %d method adapter(s) for %s", len(adapters), descriptor.name
    )
    return tuple(adapters.values())
