"""Tests for RegistrationBuilder folding and user-added callables."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from scriptbind.binding_types import Capability, ReceiverKind
from scriptbind.compose import fragment
from scriptbind.descriptor import extract_descriptor
from scriptbind.directives import IndexFragment, NoIndex, OperatorBinding, OperatorTag, method_set
from scriptbind.errors import (
    BorrowConflict,
    DuplicateCapability,
    DuplicateName,
    IncompatibleComposition,
    TypeMismatch,
)
from scriptbind.registration import RegistrationBuilder, RegistrationObject
from scriptbind.runtime import ScriptRuntime


@dataclass
class Counter:
    count: int

    def get(self) -> int:
        return self.count


@dataclass
class Other:
    value: int


def _make_builder() -> RegistrationBuilder:
    descriptor = extract_descriptor(Counter)
    builder = RegistrationBuilder(Counter)
    builder.add_fragment(fragment(descriptor, IndexFragment()))
    builder.add_fragment(fragment(descriptor, method_set(Counter.get)))
    return builder


def _bump(counter: Counter, amount: int) -> int:
    counter.count += amount
    return counter.count


class TestUserCallables:
    def test_generated_and_user_methods_both_callable(self):
        builder = _make_builder()
        builder.add_method("bump", _bump, mutable=True)
        runtime = ScriptRuntime()
        runtime.register(Counter, builder.build())
        counter = runtime.to_script(Counter(count=1))
        assert runtime.call_method(counter, "bump", 4) == 5
        assert runtime.call_method(counter, "get") == 5
        assert runtime.index(counter, "count") == 5

    def test_user_method_metadata(self):
        builder = _make_builder()
        builder.add_method("bump", _bump, mutable=True)
        registration = builder.build()
        bump = registration.methods["bump"]
        assert not bump.generated
        assert bump.arity is None
        assert bump.receiver == ReceiverKind.MUTABLE
        assert registration.methods["get"].generated

    def test_same_name_as_generated_method(self):
        builder = _make_builder()
        with pytest.raises(DuplicateName) as exc_info:
            builder.add_method("get", lambda counter: 0)
        assert exc_info.value.name == "get"

    def test_same_name_twice(self):
        builder = _make_builder()
        builder.add_method("reset", lambda counter: None)
        with pytest.raises(DuplicateName):
            builder.add_method("reset", lambda counter: None)

    def test_user_method_checks_receiver(self):
        builder = _make_builder()
        builder.add_method("bump", _bump, mutable=True)
        registration = builder.build()
        with pytest.raises(TypeMismatch):
            registration.methods["bump"](ScriptRuntime(), 3, [1])

    def test_user_method_borrows_exclusively(self):
        builder = _make_builder()
        builder.add_method("bump", _bump, mutable=True)
        runtime = ScriptRuntime()
        runtime.register(Counter, builder.build())
        counter = runtime.to_script(Counter(count=1))
        with counter.borrow():
            with pytest.raises(BorrowConflict):
                runtime.call_method(counter, "bump", 1)


class TestFolding:
    def test_second_index_fragment(self):
        builder = _make_builder()
        with pytest.raises(DuplicateCapability):
            builder.add_fragment(fragment(extract_descriptor(Counter), NoIndex()))

    def test_index_operator_after_index(self):
        builder = _make_builder()
        index_op = fragment(extract_descriptor(Counter), OperatorBinding(op=OperatorTag.INDEX))
        with pytest.raises(DuplicateCapability):
            builder.add_fragment(index_op)

    def test_duplicate_operator(self):
        builder = _make_builder()
        eq = fragment(extract_descriptor(Counter), OperatorBinding(op="Equal"))
        builder.add_fragment(eq)
        with pytest.raises(DuplicateCapability):
            builder.add_fragment(eq)

    def test_fragment_for_other_type(self):
        builder = _make_builder()
        other = fragment(extract_descriptor(Other), IndexFragment())
        with pytest.raises(IncompatibleComposition):
            builder.add_fragment(other)

    def test_fragment_apply(self):
        descriptor = extract_descriptor(Counter)
        builder = RegistrationBuilder(Counter)
        fragment(descriptor, method_set(Counter.get)).apply(builder)
        assert list(builder.build().methods) == ["get"]

    def test_build_is_read_only(self):
        registration = _make_builder().build()
        with pytest.raises(TypeError):
            registration.methods["x"] = None
        assert not registration.sealed

    def test_fragment_capabilities(self):
        descriptor = extract_descriptor(Counter)
        assert fragment(descriptor, IndexFragment()).capability == Capability.INDEX
        assert fragment(descriptor, method_set()).capability == Capability.METHODS
        eq = fragment(descriptor, OperatorBinding(op="Equal"))
        assert eq.capability == Capability.OPERATORS
        assert [op.tag for op in eq.operators] == [OperatorTag.EQUAL]


class TestRegistrationObject:
    def test_defaults_to_no_operators(self):
        registration = RegistrationObject(type_name="Counter", native_type=Counter, methods={})
        assert dict(registration.operators) == {}
        assert registration.index is None
        assert not registration.sealed

    def test_index_slot_without_index(self):
        registration = RegistrationObject(type_name="Counter", native_type=Counter, methods={})
        assert registration.index_slot() is None

    def test_package_exports_registration(self):
        import scriptbind

        assert scriptbind.RegistrationObject is RegistrationObject
