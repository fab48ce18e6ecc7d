"""Tests for the type descriptor extractor."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, EnumMeta
from typing import Annotated, Optional

import pytest
from pydantic import BaseModel, Field

from scriptbind.binding_types import BindingConfig, FieldKind, ValueKind
from scriptbind.descriptor import extract_descriptor, is_bindable, resolve_type_ref
from scriptbind.errors import ConversionError, UnsupportedShape, UnsupportedType


@dataclass
class Person:
    name: str
    number: float
    nickname: Optional[str] = None
    _secret: int = 0
    note: str = field(default="", metadata={"script": False})


class Settings(BaseModel):
    title: str
    retries: int = 3
    token: str = Field(default="", exclude=True)


class Bar(Enum):
    SINGLE = 1
    DOUBLE = 2


class Shape:
    pass


@dataclass
class Circle(Shape):
    radius: float


@dataclass
class Pair(Shape):
    _0: int
    _1: int


@dataclass
class Empty(Shape):
    pass


class Ordered:
    __variants__ = ()


@dataclass
class Later(Ordered):
    x: int


@dataclass
class Sooner(Ordered):
    y: int


Ordered.__variants__ = (Sooner, Later)


@dataclass
class Holder:
    person: Person
    maybe: Optional[Bar] = None


@dataclass
class MixedFields:
    _0: int
    name: str


@dataclass
class GappedPositional:
    _1: int


@dataclass
class HasBytes:
    data: bytes


@dataclass
class HasList:
    items: list[int]


@dataclass
class HasTypeField:
    kind: type


@dataclass
class HasMetaclassField:
    meta: EnumMeta


class NoVariants:
    pass


class EmptyEnum(Enum):
    pass


class TestRecords:
    def test_dataclass_is_single_named_variant(self):
        desc = extract_descriptor(Person)
        assert desc.name == "Person"
        assert not desc.is_union
        assert len(desc.variants) == 1
        variant = desc.variants[0]
        assert variant.tag is None
        assert variant.kind == FieldKind.NAMED
        assert [f.name for f in variant.fields] == [
            "name",
            "number",
            "nickname",
            "_secret",
            "note",
        ]

    def test_field_type_refs(self):
        fields = {f.name: f for f in extract_descriptor(Person).variants[0].fields}
        assert fields["name"].type_ref.kind == ValueKind.STRING
        assert fields["number"].type_ref.kind == ValueKind.NUMBER
        assert fields["nickname"].type_ref.optional

    def test_private_and_hidden_fields_not_addressable(self):
        keys = [k for k, _ in extract_descriptor(Person).variants[0].addressable_fields()]
        assert keys == ["name", "number", "nickname"]

    def test_expose_private_fields_config(self):
        config = BindingConfig(expose_private_fields=True)
        desc = extract_descriptor(Person, config)
        keys = [k for k, _ in desc.variants[0].addressable_fields()]
        assert "_secret" in keys
        assert "note" not in keys

    def test_pydantic_model(self):
        desc = extract_descriptor(Settings)
        keys = [k for k, _ in desc.variants[0].addressable_fields()]
        assert keys == ["title", "retries"]

    def test_nested_bound_type_is_userdata(self):
        fields = {f.name: f for f in extract_descriptor(Holder).variants[0].fields}
        assert fields["person"].type_ref.kind == ValueKind.USERDATA
        assert fields["person"].type_ref.native is Person
        assert fields["maybe"].type_ref.native is Bar
        assert fields["maybe"].type_ref.optional


class TestUnions:
    def test_enum_members_are_unit_variants(self):
        desc = extract_descriptor(Bar)
        assert desc.is_union
        assert [v.tag for v in desc.variants] == ["SINGLE", "DOUBLE"]
        assert all(v.kind == FieldKind.UNIT for v in desc.variants)

    def test_subclass_variants_in_creation_order(self):
        desc = extract_descriptor(Shape)
        assert [v.tag for v in desc.variants] == ["Circle", "Pair", "Empty"]
        assert [v.kind for v in desc.variants] == [
            FieldKind.NAMED,
            FieldKind.POSITIONAL,
            FieldKind.UNIT,
        ]

    def test_positional_fields_have_no_name(self):
        pair = extract_descriptor(Shape).variants[1]
        assert [f.name for f in pair.fields] == [None, None]
        assert [f.label for f in pair.fields] == ["0", "1"]
        assert list(pair.addressable_fields()) == []

    def test_declared_variant_order(self):
        desc = extract_descriptor(Ordered)
        assert [v.tag for v in desc.variants] == ["Sooner", "Later"]

    def test_variant_discrimination(self):
        desc = extract_descriptor(Shape)
        assert desc.variant_of(Pair(1, 2)).tag == "Pair"
        assert desc.variant_of(Circle(1.0)).tag == "Circle"
        assert extract_descriptor(Bar).variant_of(Bar.DOUBLE).tag == "DOUBLE"

    def test_foreign_value_does_not_match(self):
        desc = extract_descriptor(Shape)
        assert not desc.owns(Person("a", 1.0))
        with pytest.raises(ConversionError):
            desc.variant_index(Person("a", 1.0))


class TestUnsupported:
    def test_mixed_positional_and_named(self):
        with pytest.raises(UnsupportedShape, match="mixes positional"):
            extract_descriptor(MixedFields)

    def test_gapped_positional(self):
        with pytest.raises(UnsupportedShape, match="in order"):
            extract_descriptor(GappedPositional)

    def test_field_without_conversion(self):
        with pytest.raises(UnsupportedType) as exc_info:
            extract_descriptor(HasBytes)
        assert exc_info.value.type_name == "HasBytes"
        assert "data" in exc_info.value.member

    def test_generic_field(self):
        with pytest.raises(UnsupportedType):
            extract_descriptor(HasList)

    def test_type_annotated_field(self):
        with pytest.raises(UnsupportedType) as exc_info:
            extract_descriptor(HasTypeField)
        assert exc_info.value.type_name == "HasTypeField"
        assert "kind" in exc_info.value.member

    def test_metaclass_annotated_field(self):
        with pytest.raises(UnsupportedType):
            extract_descriptor(HasMetaclassField)

    def test_metaclass_is_not_bindable(self):
        assert not is_bindable(type)
        assert not is_bindable(EnumMeta)

    def test_plain_class(self):
        with pytest.raises(UnsupportedShape):
            extract_descriptor(NoVariants)

    def test_not_a_class(self):
        with pytest.raises(UnsupportedShape):
            extract_descriptor(42)

    def test_enum_without_members(self):
        with pytest.raises(UnsupportedShape, match="no variants"):
            extract_descriptor(EmptyEnum)


class TestResolveTypeRef:
    def test_primitives(self):
        assert resolve_type_ref(bool, "T", "m").kind == ValueKind.BOOLEAN
        assert resolve_type_ref(int, "T", "m").kind == ValueKind.INTEGER
        assert resolve_type_ref(None, "T", "m").kind == ValueKind.NIL

    def test_annotated_is_unwrapped(self):
        ref = resolve_type_ref(Annotated[int, "units"], "T", "m")
        assert ref.kind == ValueKind.INTEGER

    def test_pep604_optional(self):
        ref = resolve_type_ref(int | None, "T", "m")
        assert ref.kind == ValueKind.INTEGER
        assert ref.optional
        assert ref.describe() == "integer?"

    def test_non_optional_union_rejected(self):
        with pytest.raises(UnsupportedType, match="Optional"):
            resolve_type_ref(int | str, "T", "m")

    def test_is_bindable(self):
        assert is_bindable(Person)
        assert is_bindable(Bar)
        assert is_bindable(Shape)
        assert not is_bindable(int)
        assert not is_bindable(object)
        assert not is_bindable(NoVariants)
