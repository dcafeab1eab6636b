"""Core type enumerations and small conversion helpers shared by the compiler."""

from __future__ import annotations

import enum
import struct


class CompileError(Exception):
    """Raised when the program being compiled is invalid."""


class SymbolType(enum.Enum):
    """Kind of entity a symbol stands for."""

    VALUEVAR = enum.auto()
    ARRAYVAR = enum.auto()
    FUNCTION = enum.auto()
    FORLOOP = enum.auto()


class ValueType(enum.Enum):
    """Type of the value a symbol holds, or an expression yields."""

    NUM = enum.auto()
    FLOAT = enum.auto()
    BOOL = enum.auto()
    VOID = enum.auto()
    NUMARRAY = enum.auto()
    FLOATARRAY = enum.auto()
    BOOLARRAY = enum.auto()
    NULL = enum.auto()


class CType(enum.Enum):
    """Basic types as written in source programs."""

    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    VOID = "void"


class BinOpType(enum.Enum):
    """Binary operators; the value is the operator as written in source."""

    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    EQ = "=="
    NE = "!="
    AND = "&&"
    OR = "||"


class MonOpType(enum.Enum):
    """Unary operators; the value is the operator as written in source."""

    NOT = "!"
    NEG = "-"


_VT_NAMES = {
    ValueType.NUM: "int",
    ValueType.FLOAT: "float",
    ValueType.BOOL: "bool",
    ValueType.VOID: "void",
    ValueType.NUMARRAY: "int[]",
    ValueType.FLOATARRAY: "float[]",
    ValueType.BOOLARRAY: "bool[]",
}

_SCALAR_OF_CT = {
    CType.INT: ValueType.NUM,
    CType.FLOAT: ValueType.FLOAT,
    CType.BOOL: ValueType.BOOL,
    CType.VOID: ValueType.VOID,
}

_ARRAY_OF_CT = {
    CType.INT: ValueType.NUMARRAY,
    CType.FLOAT: ValueType.FLOATARRAY,
    CType.BOOL: ValueType.BOOLARRAY,
}

_ELEMENT_OF_ARRAY = {
    ValueType.NUMARRAY: ValueType.NUM,
    ValueType.FLOATARRAY: ValueType.FLOAT,
    ValueType.BOOLARRAY: ValueType.BOOL,
}


def ct_to_str(t: CType) -> str:
    """Name of a source type, or ``UNKNOWN``."""
    return t.value if isinstance(t, CType) else "UNKNOWN"


def vt_to_str(vt: ValueType) -> str:
    """Name of a value type as used in assembly, or ``UNKNOWN``."""
    return _VT_NAMES.get(vt, "UNKNOWN")


def ct_to_vt(ct_type: CType, is_array: bool) -> ValueType:
    """Value type for a source type, optionally as an array."""
    if not isinstance(ct_type, CType):
        raise ValueError(f"Unexpected type {ct_type!r}")
    if is_array:
        if ct_type is CType.VOID:
            raise CompileError("Type error: tried to initialise void array")
        return _ARRAY_OF_CT[ct_type]
    return _SCALAR_OF_CT[ct_type]


def bo_to_str(op: BinOpType) -> str:
    """Symbolic name of a binary operator."""
    return f"BINOP_{op.name}" if isinstance(op, BinOpType) else "BINOP_UNKNOWN"


def mo_to_str(op: MonOpType) -> str:
    """Symbolic name of a unary operator."""
    return f"MONOP_{op.name}" if isinstance(op, MonOpType) else "MONOP_UNKNOWN"


def float_to_str(value: float) -> str:
    """Format a single-precision float with six decimals."""
    try:
        (single,) = struct.unpack("f", struct.pack("f", value))
    except OverflowError:
        single = value
    return f"{single:.6f}"


def is_array(vt: ValueType) -> bool:
    """Whether a value type is an array type."""
    return vt in _ELEMENT_OF_ARRAY


def demote_array_type(array_type: ValueType) -> ValueType:
    """Element type of an array type."""
    try:
        return _ELEMENT_OF_ARRAY[array_type]
    except KeyError:
        raise ValueError(f"Cannot demote non-array type {array_type!r}") from None


def generate_array_dim_name(parent_name: str, i: int) -> str:
    """Name of the hidden variable holding dimension ``i`` of an array."""
    return f"_index{i}_{parent_name}"