"""Composable API functions for binding native types into a script runtime.

Each function chains the extractor, the composition resolver and the
runtime's registration API, so a type can be bound in one call.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Optional

from .binding_types import BindingConfig
from .compose import resolve
from .descriptor import extract_descriptor
from .descriptor_types import TypeDescriptor
from .errors import IncompatibleComposition
from .registration import RegistrationBuilder, RegistrationObject
from .runtime import ScriptRuntime

logger = logging.getLogger(__name__)


def bind(
    runtime: ScriptRuntime,
    native_type: type,
    directives: Iterable[Any] = (),
    *,
    config: Optional[BindingConfig] = None,
    customize: Optional[Callable[[RegistrationBuilder], None]] = None,
) -> RegistrationObject:
    """Generate the binding for *native_type* and register it with *runtime*.

    Args:
        runtime: The host runtime that will own the registration.
        native_type: A dataclass, pydantic model, enum or union base class.
        directives: Binding directives (models or dicts). An empty list
            registers an opaque type that can still cross the boundary.
        config: Generation config; defaults to the runtime's config.
        customize: Called with the builder after every fragment has been
            attached, to add user-authored callables. Only valid for
            fragment-form directives.

    Returns:
        The registration now owned by *runtime*.
    """
    config = config or runtime.config
    descriptor = extract_descriptor(native_type, config)
    emission = resolve(descriptor, directives, config)

    if emission.registration is not None:
        if customize is not None:
            raise IncompatibleComposition(
                descriptor.name, "a sealed registration cannot be customized"
            )
        registration = emission.registration
    else:
        builder = RegistrationBuilder(native_type, descriptor.name)
        for fragment in emission.fragments.values():
            fragment.apply(builder)
        if customize is not None:
            customize(builder)
        registration = builder.build()

    runtime.register(native_type, registration)
    logger.info("Bound %s (%s)", descriptor.name, emission.mode.value)
    return registration


def dump_descriptor(descriptor: TypeDescriptor) -> str:
    lines = [f"{'union' if descriptor.is_union else 'record'} {descriptor.name}"]
    for variant in descriptor.variants:
        indent = "  "
        if descriptor.is_union:
            lines.append(f"  {variant.tag} ({variant.kind.value})")
            indent = "    "
        for f in variant.fields:
            hidden = "" if f.accessible else " [hidden]"
            lines.append(f"{indent}{f.label}: {f.type_ref.describe()}{hidden}")
    return "\n".join(lines)


def describe(native_type: type, config: Optional[BindingConfig] = None) -> str:
    """Extract the descriptor for *native_type* and return a text dump."""
    return dump_descriptor(extract_descriptor(native_type, config))


def dump_registration(registration: RegistrationObject) -> str:
    """Return a human-readable dump of a registration's slots."""
    mode = "sealed" if registration.sealed else "open"
    lines = [f"registration {registration.type_name} ({mode})"]
    if registration.index is not None:
        if registration.index.always_miss:
            lines.append("  index: <none>")
        else:
            lines.append(f"  index: {', '.join(sorted(registration.index.keys))}")
    for name, adapter in sorted(registration.methods.items()):
        lines.append(f"  method {adapter.signature or name + '(...)'}")
    for tag in registration.operators:
        lines.append(f"  operator {tag.value} ({tag.symbol})")
    return "\n".join(lines)
