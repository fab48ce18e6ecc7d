"""Tests for the composition resolver (sealed vs fragment emission)."""

from __future__ import annotations

from dataclasses import dataclass

import pytest
from pydantic import ValidationError

from scriptbind.binding_types import Capability, CompositionMode
from scriptbind.compose import fragment, resolve, seal
from scriptbind.descriptor import extract_descriptor
from scriptbind.descriptor_types import TypeDescriptor
from scriptbind.directives import (
    IndexCapability,
    IndexFragment,
    NoIndex,
    OperatorBinding,
    OperatorTag,
    method_set,
    mutates,
    parse_directives,
)
from scriptbind.errors import (
    DuplicateCapability,
    IncompatibleComposition,
    MissingReceiver,
)


@dataclass
class Widget:
    size: int

    def area(self) -> int:
        return self.size * self.size

    @mutates
    def grow(self, by: int) -> None:
        self.size += by


def orphan() -> int:
    return 0


def _descriptor() -> TypeDescriptor:
    return extract_descriptor(Widget)


def _methods(sealed: bool = False):
    return method_set(Widget.area, Widget.grow, sealed=sealed)


EQUAL = OperatorBinding(op=OperatorTag.EQUAL)
INDEX_OP = OperatorBinding(op=OperatorTag.INDEX)


class TestSealedEmission:
    def test_index_capability_alone(self):
        emission = resolve(_descriptor(), [IndexCapability()])
        assert emission.mode == CompositionMode.SEALED
        assert emission.sealed
        assert emission.fragments == {}
        registration = emission.registration
        assert registration.sealed
        assert registration.index.keys == frozenset({"size"})
        assert dict(registration.methods) == {}

    def test_index_with_sealed_methods(self):
        registration = seal(_descriptor(), [IndexCapability(), _methods(sealed=True)])
        assert registration.sealed
        assert registration.index is not None
        assert sorted(registration.methods) == ["area", "grow"]

    def test_no_index_with_sealed_methods(self):
        registration = seal(_descriptor(), [NoIndex(), _methods(sealed=True)])
        assert registration.index.always_miss
        assert sorted(registration.methods) == ["area", "grow"]

    def test_operators_fold_into_sealed_registration(self):
        registration = seal(_descriptor(), [IndexCapability(), EQUAL])
        assert list(registration.operators) == [OperatorTag.EQUAL]

    def test_directive_order_does_not_matter(self):
        registration = seal(_descriptor(), [_methods(sealed=True), EQUAL, NoIndex()])
        assert registration.sealed
        assert OperatorTag.EQUAL in registration.operators


class TestFragmentEmission:
    def test_index_fragment_with_method_fragment(self):
        emission = resolve(_descriptor(), [IndexFragment(), _methods()])
        assert emission.mode == CompositionMode.FRAGMENT
        assert emission.registration is None
        assert set(emission.fragments) == {Capability.INDEX, Capability.METHODS}
        assert emission.fragments[Capability.INDEX].index.keys == frozenset({"size"})
        names = [m.name for m in emission.fragments[Capability.METHODS].methods]
        assert names == ["area", "grow"]

    def test_no_index_with_method_fragment(self):
        emission = resolve(_descriptor(), [NoIndex(), _methods()])
        assert not emission.sealed
        assert emission.fragments[Capability.INDEX].index.always_miss

    def test_method_fragment_alone(self):
        emission = resolve(_descriptor(), [_methods()])
        assert set(emission.fragments) == {Capability.METHODS}

    def test_operators_alone(self):
        emission = resolve(_descriptor(), [EQUAL, INDEX_OP])
        assert set(emission.fragments) == {Capability.OPERATORS}
        tags = [op.tag for op in emission.fragments[Capability.OPERATORS].operators]
        assert tags == [OperatorTag.EQUAL, OperatorTag.INDEX]

    def test_index_operator_with_method_fragment(self):
        emission = resolve(_descriptor(), [INDEX_OP, _methods()])
        assert set(emission.fragments) == {Capability.METHODS, Capability.OPERATORS}

    def test_no_directives(self):
        emission = resolve(_descriptor(), [])
        assert emission.mode == CompositionMode.FRAGMENT
        assert emission.fragments == {}

    def test_directives_from_plain_data(self):
        emission = resolve(
            _descriptor(),
            [{"kind": "index_fragment"}, {"kind": "operator", "op": "Equal"}],
        )
        assert set(emission.fragments) == {Capability.INDEX, Capability.OPERATORS}


class TestDuplicates:
    @pytest.mark.parametrize(
        "directives",
        [
            [IndexCapability(), IndexFragment()],
            [IndexCapability(), NoIndex()],
            [IndexFragment(), NoIndex()],
            [IndexFragment(), INDEX_OP],
            [IndexCapability(), INDEX_OP],
        ],
    )
    def test_two_index_producers(self, directives):
        with pytest.raises(DuplicateCapability) as exc_info:
            resolve(_descriptor(), directives)
        assert exc_info.value.capability == "index"
        assert exc_info.value.type_name == "Widget"

    def test_two_method_sets(self):
        with pytest.raises(DuplicateCapability) as exc_info:
            resolve(_descriptor(), [_methods(), method_set(Widget.area)])
        assert exc_info.value.capability == "methods"

    def test_same_operator_twice(self):
        with pytest.raises(DuplicateCapability) as exc_info:
            resolve(_descriptor(), [EQUAL, OperatorBinding(op="Equal")])
        assert exc_info.value.capability == "Equal"


class TestIncompatibleModes:
    def test_sealed_methods_with_index_fragment(self):
        with pytest.raises(IncompatibleComposition):
            resolve(_descriptor(), [IndexFragment(), _methods(sealed=True)])

    def test_sealed_methods_with_index_operator(self):
        with pytest.raises(IncompatibleComposition):
            resolve(_descriptor(), [INDEX_OP, _methods(sealed=True)])

    def test_sealed_methods_without_index(self):
        with pytest.raises(IncompatibleComposition, match="IndexCapability or NoIndex"):
            resolve(_descriptor(), [_methods(sealed=True)])

    def test_sealed_index_with_method_fragment(self):
        with pytest.raises(IncompatibleComposition):
            resolve(_descriptor(), [IndexCapability(), _methods()])

    def test_seal_on_fragment_directives(self):
        with pytest.raises(IncompatibleComposition):
            seal(_descriptor(), [IndexFragment(), _methods()])

    @pytest.mark.parametrize("directive", [IndexCapability(), _methods(sealed=True)])
    def test_fragment_rejects_sealed_directive(self, directive):
        with pytest.raises(IncompatibleComposition):
            fragment(_descriptor(), directive)


class TestGenerationErrors:
    def test_generator_errors_propagate(self):
        with pytest.raises(MissingReceiver):
            resolve(_descriptor(), [IndexFragment(), method_set(orphan)])

    def test_unknown_directive_kind(self):
        with pytest.raises(ValidationError):
            parse_directives([{"kind": "bogus"}])

    def test_unknown_operator(self):
        with pytest.raises(ValidationError):
            parse_directives([{"kind": "operator", "op": "Pow"}])

    def test_non_callable_in_method_set(self):
        with pytest.raises(ValidationError):
            parse_directives([{"kind": "methods", "functions": [42]}])
