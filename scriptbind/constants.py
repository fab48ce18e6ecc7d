"""Named constants that replace magic strings across the codebase."""

from __future__ import annotations

# Dataclass fields named _0, _1, ... form a positional (tuple-like) shape.
POSITIONAL_FIELD_PATTERN = r"_(\d+)"

PRIVATE_FIELD_PREFIX = "_"

# Dataclass field metadata key; ``{"script": False}`` hides a field.
FIELD_METADATA_KEY = "script"

# Attribute set on functions by @mutates.
MUTATES_ATTR = "__scriptbind_mutates__"

# Optional class attribute fixing the variant set of a union base class.
VARIANTS_ATTR = "__variants__"

RECEIVER_PARAM_NAME = "self"

# Script-side binary operator symbols.
SYMBOL_ADD = "+"
SYMBOL_SUB = "-"
SYMBOL_MUL = "*"
SYMBOL_DIV = "/"
SYMBOL_MOD = "%"
SYMBOL_BAND = "&"
SYMBOL_BOR = "|"
SYMBOL_BXOR = "~"
SYMBOL_SHL = "<<"
SYMBOL_SHR = ">>"
SYMBOL_EQ = "=="
SYMBOL_NE = "~="
SYMBOL_LT = "<"
SYMBOL_LE = "<="
SYMBOL_GT = ">"
SYMBOL_GE = ">="

# Script-side unary operator symbols.
SYMBOL_NEG = "-"
SYMBOL_BNOT = "~"
SYMBOL_NOT = "not"

SYMBOL_INDEX = "[]"
