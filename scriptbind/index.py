"""Field-lookup dispatcher generation.

For each variant a key table is precomputed from the descriptor: key ->
native attribute. At lookup time the value's variant is discriminated,
the key is looked up in that variant's table, and the field value is
converted into a script value. Keys are compared by exact string equality.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .convert import script_kind
from .descriptor_types import TypeDescriptor
from .errors import NoSuchField, OperandTypeMismatch
from .registration import IndexAdapter
from .userdata import UserData

if TYPE_CHECKING:
    from .runtime import ScriptRuntime

logger = logging.getLogger(__name__)


def _key_tables(descriptor: TypeDescriptor) -> tuple[dict[str, str], ...]:
    return tuple(
        {key: field.attribute for key, field in variant.addressable_fields()}
        for variant in descriptor.variants
    )


def build_lookup(descriptor: TypeDescriptor):
    """Return ``lookup(runtime, target, key)`` for *descriptor*.

    The lookup reads the field under a shared borrow and converts the
    result after the borrow is released.
    """
    tables = _key_tables(descriptor)
    type_name = descriptor.name

    def lookup(runtime: ScriptRuntime, target: Any, key: Any) -> Any:
        if not (isinstance(target, UserData) and target.is_instance(descriptor.native)):
            raise OperandTypeMismatch("index", type_name, script_kind(target))
        with target.borrow() as value:
            if not isinstance(key, str):
                raise NoSuchField(type_name, key)
            attribute = tables[descriptor.variant_index(value)].get(key)
            if attribute is None:
                raise NoSuchField(type_name, key)
            result = getattr(value, attribute)
        return runtime.to_script(result)

    return lookup


def generate_index(descriptor: TypeDescriptor) -> IndexAdapter:
    """Generate the field-lookup dispatcher for *descriptor*."""
    tables = _key_tables(descriptor)
    keys = frozenset(key for table in tables for key in table)
    logger.info(
        "Generated index for %s: %d addressable key(s)", descriptor.name, len(keys)
    )
    return IndexAdapter(
        type_name=descriptor.name, keys=keys, lookup=build_lookup(descriptor)
    )


def generate_no_index(descriptor: TypeDescriptor) -> IndexAdapter:
    """Generate an index slot that reports every key as missing."""
    type_name = descriptor.name

    def lookup(runtime: ScriptRuntime, target: Any, key: Any) -> Any:
        raise NoSuchField(type_name, key)

    logger.info("Generated always-miss index for %s", type_name)
    return IndexAdapter(
        type_name=type_name, keys=frozenset(), lookup=lookup, always_miss=True
    )
