"""Composition Resolver: directive set -> sealed registration or fragments.

The resolver looks at which directives are present for one type, rejects
combinations that would produce a capability twice or mix sealed and
fragment composition on one axis, and then emits either a single sealed
``RegistrationObject`` or one ``Fragment`` per capability axis.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from .binding_types import DEFAULT_CONFIG, BindingConfig, Capability, CompositionMode
from .descriptor_types import TypeDescriptor
from .directives import (
    BindingDirective,
    IndexCapability,
    IndexFragment,
    MethodSet,
    NoIndex,
    OperatorBinding,
    OperatorTag,
    parse_directives,
)
from .errors import DuplicateCapability, IncompatibleComposition
from .index import generate_index, generate_no_index
from .methods import generate_methods
from .operators import generate_operators
from .registration import Fragment, IndexAdapter, RegistrationBuilder, RegistrationObject

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Emission:
    """Result of resolving one type's directives."""

    type_name: str
    mode: CompositionMode
    registration: RegistrationObject | None = None
    fragments: Mapping[Capability, Fragment] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @property
    def sealed(self) -> bool:
        return self.mode == CompositionMode.SEALED


@dataclass(frozen=True)
class _DirectivePlan:
    index: BindingDirective | None
    methods: MethodSet | None
    operators: tuple[OperatorTag, ...]


def _produces_index(directive: BindingDirective) -> bool:
    if isinstance(directive, (IndexCapability, IndexFragment, NoIndex)):
        return True
    return isinstance(directive, OperatorBinding) and directive.op == OperatorTag.INDEX


def _plan(type_name: str, directives: list[BindingDirective]) -> _DirectivePlan:
    index_directives = [d for d in directives if _produces_index(d)]
    if len(index_directives) > 1:
        raise DuplicateCapability(type_name, Capability.INDEX.value)

    method_sets = [d for d in directives if isinstance(d, MethodSet)]
    if len(method_sets) > 1:
        raise DuplicateCapability(type_name, Capability.METHODS.value)

    tags: list[OperatorTag] = []
    for directive in directives:
        if isinstance(directive, OperatorBinding):
            if directive.op in tags:
                raise DuplicateCapability(type_name, directive.op.value)
            tags.append(directive.op)

    return _DirectivePlan(
        index=index_directives[0] if index_directives else None,
        methods=method_sets[0] if method_sets else None,
        operators=tuple(tags),
    )


def _check_modes(type_name: str, plan: _DirectivePlan) -> CompositionMode:
    index, methods = plan.index, plan.methods
    if methods is not None and methods.sealed:
        if index is None:
            raise IncompatibleComposition(
                type_name, "a sealed method set needs IndexCapability or NoIndex"
            )
        if isinstance(index, (IndexFragment, OperatorBinding)):
            raise IncompatibleComposition(
                type_name,
                f"a sealed method set cannot be combined with a fragment index ({index.kind})",
            )
        return CompositionMode.SEALED
    if isinstance(index, IndexCapability):
        if methods is not None:
            raise IncompatibleComposition(
                type_name, "a sealed index cannot be combined with a fragment method set"
            )
        return CompositionMode.SEALED
    return CompositionMode.FRAGMENT


def _index_adapter(descriptor: TypeDescriptor, directive: BindingDirective) -> IndexAdapter:
    if isinstance(directive, NoIndex):
        return generate_no_index(descriptor)
    return generate_index(descriptor)


def resolve(
    descriptor: TypeDescriptor,
    directives: Iterable[Any],
    config: BindingConfig | None = None,
) -> Emission:
    """Decide the emission shape for *descriptor* and generate it."""
    config = config or DEFAULT_CONFIG
    name = descriptor.name
    plan = _plan(name, parse_directives(directives))
    mode = _check_modes(name, plan)

    index = None
    if plan.index is not None and not isinstance(plan.index, OperatorBinding):
        index = _index_adapter(descriptor, plan.index)
    methods = (
        generate_methods(descriptor, plan.methods, config)
        if plan.methods is not None
        else ()
    )
    operators = generate_operators(descriptor, plan.operators) if plan.operators else ()

    if mode == CompositionMode.SEALED:
        builder = RegistrationBuilder(descriptor.native, name)
        if index is not None:
            builder.set_index(index)
        for adapter in methods:
            builder.add_adapter(adapter)
        for op in operators:
            builder.add_operator(op)
        registration = builder.build(sealed=True)
        logger.info(
            "Resolved %s as sealed: %d method(s), %d operator(s)",
            name,
            len(methods),
            len(operators),
        )
        return Emission(type_name=name, mode=mode, registration=registration)

    fragments: dict[Capability, Fragment] = {}
    if index is not None:
        fragments[Capability.INDEX] = Fragment(name, Capability.INDEX, index=index)
    if plan.methods is not None:
        fragments[Capability.METHODS] = Fragment(name, Capability.METHODS, methods=methods)
    if operators:
        fragments[Capability.OPERATORS] = Fragment(
            name, Capability.OPERATORS, operators=operators
        )
    logger.info(
        "Resolved %s as fragments: %s",
        name,
        ", ".join(c.value for c in fragments) or "none",
    )
    return Emission(type_name=name, mode=mode, fragments=MappingProxyType(fragments))


def seal(
    descriptor: TypeDescriptor,
    directives: Iterable[Any],
    config: BindingConfig | None = None,
) -> RegistrationObject:
    """Resolve *directives* and return the sealed registration."""
    emission = resolve(descriptor, directives, config)
    if emission.registration is None:
        raise IncompatibleComposition(
            descriptor.name, "directives resolve to fragments, not a sealed registration"
        )
    return emission.registration


def fragment(
    descriptor: TypeDescriptor,
    directive: Any,
    config: BindingConfig | None = None,
) -> Fragment:
    """Emit the fragment for a single fragment-form directive."""
    (directive,) = parse_directives([directive])
    name = descriptor.name
    if isinstance(directive, IndexCapability) or (
        isinstance(directive, MethodSet) and directive.sealed
    ):
        raise IncompatibleComposition(
            name, f"{directive.kind} directive is sealed and has no fragment form"
        )
    if isinstance(directive, (IndexFragment, NoIndex)):
        return Fragment(name, Capability.INDEX, index=_index_adapter(descriptor, directive))
    if isinstance(directive, MethodSet):
        return Fragment(
            name,
            Capability.METHODS,
            methods=generate_methods(descriptor, directive, config or DEFAULT_CONFIG),
        )
    return Fragment(
        name, Capability.OPERATORS, operators=generate_operators(descriptor, [directive.op])
    )
