"""Registration objects, fragments and the builder that folds them together."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Mapping, Sequence

from .binding_types import Capability, ReceiverKind
from .convert import script_kind
from .directives import OperatorTag
from .errors import (
    ArityMismatch,
    DuplicateCapability,
    DuplicateName,
    IncompatibleComposition,
    TypeMismatch,
)
from .userdata import UserData

if TYPE_CHECKING:
    from .runtime import ScriptRuntime

logger = logging.getLogger(__name__)


# ── Adapters ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class IndexAdapter:
    """Field-lookup dispatcher: ``(runtime, target, key) -> script value``."""

    type_name: str
    keys: frozenset[str]
    lookup: Callable[[ScriptRuntime, Any, Any], Any]
    always_miss: bool = False

    def __call__(self, runtime: ScriptRuntime, target: Any, key: Any) -> Any:
        return self.lookup(runtime, target, key)


@dataclass(frozen=True)
class MethodAdapter:
    """Call adapter: ``(runtime, receiver, args) -> script value``.

    ``arity`` is None for user-added callables, which take the raw script
    arguments.
    """

    name: str
    arity: int | None
    receiver: ReceiverKind
    call: Callable[[ScriptRuntime, Any, Sequence[Any]], Any]
    generated: bool = True
    signature: str = ""

    def __call__(self, runtime: ScriptRuntime, receiver: Any, args: Sequence[Any]) -> Any:
        return self.call(runtime, receiver, args)


@dataclass(frozen=True)
class OperatorAdapter:
    tag: OperatorTag
    type_name: str
    call: Callable[..., Any]

    def __call__(self, runtime: ScriptRuntime, *operands: Any) -> Any:
        if len(operands) != self.tag.arity:
            raise ArityMismatch(
                f"{self.type_name}.{self.tag.value}", self.tag.arity, len(operands)
            )
        return self.call(runtime, *operands)


# ── Fragments and registrations ──────────────────────────────────


@dataclass(frozen=True)
class Fragment:
    """Reusable piece of a registration; the caller attaches it explicitly."""

    type_name: str
    capability: Capability
    index: IndexAdapter | None = None
    methods: tuple[MethodAdapter, ...] = ()
    operators: tuple[OperatorAdapter, ...] = ()

    def apply(self, builder: RegistrationBuilder) -> None:
        builder.add_fragment(self)


@dataclass(frozen=True)
class RegistrationObject:
    """Runtime-visible table of callables and dispatch entries for one type."""

    type_name: str
    native_type: type
    methods: Mapping[str, MethodAdapter]
    index: IndexAdapter | None = None
    operators: Mapping[OperatorTag, OperatorAdapter] = field(
        default_factory=lambda: MappingProxyType({})
    )
    sealed: bool = False

    def index_slot(self) -> Callable[[ScriptRuntime, Any, Any], Any] | None:
        """Field lookup from the index slot, or from the Index operator slot."""
        if self.index is not None:
            return self.index
        return self.operators.get(OperatorTag.INDEX)


def _user_method(
    native_type: type, type_name: str, name: str, func: Callable, mutable: bool
) -> Callable[[ScriptRuntime, Any, Sequence[Any]], Any]:
    qualified = f"{type_name}.{name}"

    def call(runtime: ScriptRuntime, receiver: Any, args: Sequence[Any]) -> Any:
        if not (isinstance(receiver, UserData) and receiver.is_instance(native_type)):
            raise TypeMismatch(qualified, None, type_name, script_kind(receiver))
        borrow = receiver.borrow_mut if mutable else receiver.borrow
        with borrow() as value:
            result = func(value, *args)
        return runtime.to_script(result)

    return call


class RegistrationBuilder:
    """Folds fragments and user callables into one RegistrationObject.

    A name or capability may be contributed only once; a second
    contribution is an error rather than an override.
    """

    def __init__(self, native_type: type, type_name: str | None = None):
        self.native_type = native_type
        self.type_name = type_name or native_type.__name__
        self._methods: dict[str, MethodAdapter] = {}
        self._index: IndexAdapter | None = None
        self._operators: dict[OperatorTag, OperatorAdapter] = {}

    def add_fragment(self, fragment: Fragment) -> RegistrationBuilder:
        if fragment.type_name != self.type_name:
            raise IncompatibleComposition(
                self.type_name,
                f"cannot attach a {fragment.capability.value} fragment for {fragment.type_name}",
            )
        if fragment.index is not None:
            self.set_index(fragment.index)
        for adapter in fragment.methods:
            self.add_adapter(adapter)
        for op in fragment.operators:
            self.add_operator(op)
        return self

    def add_adapter(self, adapter: MethodAdapter) -> RegistrationBuilder:
        if adapter.name in self._methods:
            raise DuplicateName(self.type_name, adapter.name)
        self._methods[adapter.name] = adapter
        return self

    def add_method(
        self, name: str, func: Callable, *, mutable: bool = False
    ) -> RegistrationBuilder:
        """Add a user-authored callable ``func(value, *script_args)``."""
        adapter = MethodAdapter(
            name=name,
            arity=None,
            receiver=ReceiverKind.MUTABLE if mutable else ReceiverKind.SHARED,
            call=_user_method(self.native_type, self.type_name, name, func, mutable),
            generated=False,
        )
        return self.add_adapter(adapter)

    def set_index(self, adapter: IndexAdapter) -> RegistrationBuilder:
        if self._index is not None or OperatorTag.INDEX in self._operators:
            raise DuplicateCapability(self.type_name, Capability.INDEX.value)
        self._index = adapter
        return self

    def add_operator(self, adapter: OperatorAdapter) -> RegistrationBuilder:
        if adapter.tag in self._operators:
            raise DuplicateCapability(self.type_name, adapter.tag.value)
        if adapter.tag == OperatorTag.INDEX and self._index is not None:
            raise DuplicateCapability(self.type_name, Capability.INDEX.value)
        self._operators[adapter.tag] = adapter
        return self

    def build(self, *, sealed: bool = False) -> RegistrationObject:
        registration = RegistrationObject(
            type_name=self.type_name,
            native_type=self.native_type,
            methods=MappingProxyType(dict(self._methods)),
            index=self._index,
            operators=MappingProxyType(dict(self._operators)),
            sealed=sealed,
        )
        logger.debug(
            "Built registration for %s: %d method(s), index=%s, %d operator(s), sealed=%s",
            self.type_name,
            len(self._methods),
            self._index is not None,
            len(self._operators),
            sealed,
        )
        return registration
