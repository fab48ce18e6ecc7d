"""Type Descriptor Extractor: native class -> TypeDescriptor.

Pure analysis: reads dataclass fields, pydantic model fields or enum
members and normalises them into one variant/field description that the
generators iterate without caring about the native shape.
"""

from __future__ import annotations

import dataclasses
import logging
import re
import types
import typing
from enum import Enum
from typing import Annotated, Any, Union

from pydantic import BaseModel

from . import constants
from .binding_types import DEFAULT_CONFIG, BindingConfig, FieldKind, ValueKind
from .descriptor_types import (
    NIL_REF,
    FieldDescriptor,
    TypeDescriptor,
    TypeRef,
    VariantDescriptor,
)
from .errors import UnsupportedShape, UnsupportedType

logger = logging.getLogger(__name__)

_POSITIONAL_RE = re.compile(rf"^{constants.POSITIONAL_FIELD_PATTERN}$")

_PRIMITIVE_KINDS: dict[type, ValueKind] = {
    bool: ValueKind.BOOLEAN,
    int: ValueKind.INTEGER,
    float: ValueKind.NUMBER,
    str: ValueKind.STRING,
}


# ── Bindability ──────────────────────────────────────────────────


def _union_variant_classes(tp: type) -> tuple[type, ...]:
    declared = tp.__dict__.get(constants.VARIANTS_ATTR)
    if declared is not None:
        return tuple(declared)
    return tuple(sub for sub in tp.__subclasses__() if dataclasses.is_dataclass(sub))


def _is_record(tp: type) -> bool:
    return dataclasses.is_dataclass(tp) or issubclass(tp, BaseModel)


def is_bindable(tp: Any) -> bool:
    """True if *tp* is a record, enum or union base the extractor understands."""
    if not isinstance(tp, type) or tp is object or tp in _PRIMITIVE_KINDS:
        return False
    # Metaclasses: type.__subclasses__ is unbound here.
    if issubclass(tp, type):
        return False
    if issubclass(tp, Enum) or _is_record(tp):
        return True
    return bool(_union_variant_classes(tp))


def resolve_type_ref(annotation: Any, owner: str, member: str) -> TypeRef:
    """Map a Python annotation onto a script-representable TypeRef.

    Raises ``UnsupportedType`` naming *owner* and *member* when the
    annotation has no script conversion.
    """
    if typing.get_origin(annotation) is Annotated:
        annotation = typing.get_args(annotation)[0]
    if annotation is None or annotation is type(None):
        return NIL_REF

    origin = typing.get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = typing.get_args(annotation)
        non_none = [a for a in args if a is not type(None)]
        if len(non_none) == 1 and len(non_none) < len(args):
            inner = resolve_type_ref(non_none[0], owner, member)
            return inner.model_copy(update={"optional": True})
        raise UnsupportedType(
            owner, member, annotation, "only Optional[...] unions are supported"
        )

    if origin is None and isinstance(annotation, type):
        kind = _PRIMITIVE_KINDS.get(annotation)
        if kind is not None:
            return TypeRef(kind=kind)
        if is_bindable(annotation):
            return TypeRef(kind=ValueKind.USERDATA, native=annotation)
    raise UnsupportedType(owner, member, annotation)


# ── Field collection ─────────────────────────────────────────────


def _raw_fields(cls: type, owner: str) -> list[tuple[str, Any, bool]]:
    """Return ``(attribute, annotation, hidden)`` for each declared field."""
    if issubclass(cls, BaseModel):
        return [
            (name, info.annotation, info.exclude is True)
            for name, info in cls.model_fields.items()
        ]
    try:
        hints = typing.get_type_hints(cls)
    except (NameError, TypeError) as exc:
        raise UnsupportedType(
            owner, cls.__name__, None, f"unresolvable annotations ({exc})"
        ) from exc
    return [
        (
            f.name,
            hints.get(f.name, f.type),
            f.metadata.get(constants.FIELD_METADATA_KEY, True) is False,
        )
        for f in dataclasses.fields(cls)
    ]


def _positional_index(attribute: str) -> int | None:
    m = _POSITIONAL_RE.match(attribute)
    return int(m.group(1)) if m else None


def _collect_fields(
    cls: type, owner: str, config: BindingConfig
) -> tuple[FieldKind, tuple[FieldDescriptor, ...]]:
    raw = _raw_fields(cls, owner)
    if not raw:
        return FieldKind.UNIT, ()

    positions = [_positional_index(attribute) for attribute, _, _ in raw]
    if all(p is not None for p in positions):
        if positions != list(range(len(raw))):
            raise UnsupportedShape(
                owner,
                f"{cls.__name__}: positional fields must be _0.._{len(raw) - 1} in order",
            )
        kind = FieldKind.POSITIONAL
    elif any(p is not None for p in positions):
        raise UnsupportedShape(
            owner, f"{cls.__name__}: mixes positional and named fields"
        )
    else:
        kind = FieldKind.NAMED

    fields = []
    for position, (attribute, annotation, hidden) in enumerate(raw):
        type_ref = resolve_type_ref(annotation, owner, f"{cls.__name__}.{attribute}")
        if kind == FieldKind.POSITIONAL:
            fields.append(
                FieldDescriptor(
                    position=position,
                    attribute=attribute,
                    type_ref=type_ref,
                    accessible=not hidden,
                )
            )
            continue
        private = attribute.startswith(constants.PRIVATE_FIELD_PREFIX)
        fields.append(
            FieldDescriptor(
                name=attribute,
                position=position,
                attribute=attribute,
                type_ref=type_ref,
                accessible=not hidden and (config.expose_private_fields or not private),
            )
        )
    return kind, tuple(fields)


# ── Variant extraction ───────────────────────────────────────────


def _enum_variants(native_type: type[Enum]) -> tuple[VariantDescriptor, ...]:
    return tuple(
        VariantDescriptor(tag=member.name, kind=FieldKind.UNIT, native=member)
        for member in native_type
    )


def _class_variant(
    base: type, cls: type, config: BindingConfig
) -> VariantDescriptor:
    if not (isinstance(cls, type) and dataclasses.is_dataclass(cls)):
        raise UnsupportedShape(base.__name__, f"variant {cls!r} is not a dataclass")
    if not issubclass(cls, base):
        raise UnsupportedShape(
            base.__name__, f"variant {cls.__name__} does not subclass {base.__name__}"
        )
    kind, fields = _collect_fields(cls, base.__name__, config)
    return VariantDescriptor(tag=cls.__name__, kind=kind, fields=fields, native=cls)


def extract_descriptor(
    native_type: Any, config: BindingConfig | None = None
) -> TypeDescriptor:
    """Build the TypeDescriptor for a record, enum or union base class."""
    config = config or DEFAULT_CONFIG
    if not isinstance(native_type, type):
        raise UnsupportedShape(repr(native_type), "not a class")
    name = native_type.__name__
    if not is_bindable(native_type):
        raise UnsupportedShape(
            name, "not a dataclass, pydantic model, enum or union base class"
        )

    if issubclass(native_type, Enum):
        variants = _enum_variants(native_type)
        is_union = True
    elif _is_record(native_type):
        kind, fields = _collect_fields(native_type, name, config)
        variants = (VariantDescriptor(kind=kind, fields=fields, native=native_type),)
        is_union = False
    else:
        classes = _union_variant_classes(native_type)
        variants = tuple(_class_variant(native_type, c, config) for c in classes)
        is_union = True

    if not variants:
        raise UnsupportedShape(name, "declares no variants")
    tags = [v.tag for v in variants]
    if len(set(tags)) != len(tags):
        raise UnsupportedShape(name, f"duplicate variant tags in {tags}")

    logger.info(
        "Extracted descriptor for %s: %d variant(s), union=%s",
        name,
        len(variants),
        is_union,
    )
    return TypeDescriptor(
        name=name, native=native_type, is_union=is_union, variants=variants
    )
