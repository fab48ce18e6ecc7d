"""Binding generator exposing native Python data types to an embedded script runtime."""

from .api import bind, describe, dump_registration  # noqa: F401
from .binding_types import BindingConfig, Capability, CompositionMode  # noqa: F401
from .compose import Emission, fragment, resolve, seal  # noqa: F401
from .descriptor import extract_descriptor  # noqa: F401
from .directives import (  # noqa: F401
    IndexCapability,
    IndexFragment,
    MethodSet,
    NoIndex,
    OperatorBinding,
    OperatorTag,
    method_set,
    mutates,
    operator_bindings,
    parse_directives,
)
from .errors import BindingError, ScriptError  # noqa: F401
from .registration import Fragment, RegistrationBuilder, RegistrationObject  # noqa: F401
from .runtime import ScriptRuntime  # noqa: F401
from .userdata import UserData  # noqa: F401
