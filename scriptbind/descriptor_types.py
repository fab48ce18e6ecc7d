"""Type descriptor models (pure data, no business logic).

Descriptors are frozen: once extracted, a type's variant and field set
cannot change.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterator

from pydantic import BaseModel, ConfigDict

from .binding_types import FieldKind, ReceiverKind, ValueKind
from .errors import ConversionError


class TypeRef(BaseModel):
    """Script-representable type of a field, parameter or return value."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: ValueKind
    native: Any = None  # bound class when kind is USERDATA
    optional: bool = False

    def describe(self) -> str:
        base = self.native.__name__ if self.kind == ValueKind.USERDATA else self.kind.value
        return f"{base}?" if self.optional else base


NIL_REF = TypeRef(kind=ValueKind.NIL)


class FieldDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str | None = None  # None for positional fields
    position: int
    attribute: str
    type_ref: TypeRef
    accessible: bool = True

    @property
    def label(self) -> str:
        return self.name if self.name is not None else str(self.position)


class VariantDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    tag: str | None = None  # None for records
    kind: FieldKind
    fields: tuple[FieldDescriptor, ...] = ()
    native: Any = None  # variant class, or the enum member

    def addressable_fields(self) -> Iterator[tuple[str, FieldDescriptor]]:
        """Yield ``(key, field)`` for every field reachable by name lookup."""
        for f in self.fields:
            if f.name is not None and f.accessible:
                yield f.name, f

    def matches(self, value: Any) -> bool:
        if isinstance(self.native, Enum):
            return value is self.native
        return type(value) is self.native

    @property
    def native_class(self) -> type:
        if isinstance(self.native, Enum):
            return type(self.native)
        return self.native


class TypeDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    native: Any
    is_union: bool = False
    variants: tuple[VariantDescriptor, ...]

    def variant_index(self, value: Any) -> int:
        """Discriminate *value* against the declared variant set."""
        if not self.is_union:
            if isinstance(value, self.native):
                return 0
        else:
            for i, variant in enumerate(self.variants):
                if variant.matches(value):
                    return i
        raise ConversionError(
            f"{type(value).__name__} value is not a variant of {self.name}"
        )

    def variant_of(self, value: Any) -> VariantDescriptor:
        return self.variants[self.variant_index(value)]

    def owns(self, value: Any) -> bool:
        try:
            self.variant_index(value)
        except ConversionError:
            return False
        return True


class ParamDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    type_ref: TypeRef


class MethodSignature(BaseModel):
    """Normalised signature of one bound method (receiver excluded from params)."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    receiver: ReceiverKind = ReceiverKind.SHARED
    params: tuple[ParamDescriptor, ...] = ()
    returns: TypeRef | None = None  # None: the method yields no result
    func: Any = None

    def describe(self) -> str:
        receiver = "mut self" if self.receiver == ReceiverKind.MUTABLE else "self"
        params = ", ".join(
            [receiver] + [f"{p.name}: {p.type_ref.describe()}" for p in self.params]
        )
        returns = self.returns.describe() if self.returns is not None else "nil"
        return f"{self.name}({params}) -> {returns}"
