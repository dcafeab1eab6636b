"""Low-level instruction emission shared by the code generator."""

from __future__ import annotations

import itertools
from typing import Sequence, Union

from .assembly import Assembly
from .ast import ArrExpr
from .symbols import Symbol, SymbolTable
from .types import CompileError, ValueType, vt_to_str

_ARRAY_PREFIX = {
    ValueType.NUMARRAY: "i",
    ValueType.FLOATARRAY: "f",
    ValueType.BOOLARRAY: "b",
}

_SCALAR_PREFIX = {
    ValueType.NUM: "i",
    ValueType.FLOAT: "f",
    ValueType.BOOL: "b",
}


def _array_prefix(arr: Symbol) -> str:
    try:
        return _ARRAY_PREFIX[arr.vtype]
    except KeyError:
        raise ValueError(f"Unexpected array type {vt_to_str(arr.vtype)}") from None


def _scalar_prefix(vtype: ValueType) -> str:
    try:
        return _SCALAR_PREFIX[vtype]
    except KeyError:
        raise ValueError(
            f"Trying to scalar-init a variable with a non-scalar ({vt_to_str(vtype)})"
        ) from None


class Emitter:
    """Emits instructions into an assembly, relative to the current scope."""

    def __init__(self, global_scope: SymbolTable, assembly: Assembly | None = None):
        self.global_scope = global_scope
        self.scope = global_scope
        self.assembly = assembly if assembly is not None else Assembly()
        self.last_type = ValueType.NULL
        self._label_numbers = itertools.count()

    def instr(self, name: str, *args: object) -> None:
        """Emit an instruction; at global level it goes to the init routine."""
        if self.scope.nesting_level == 0:
            self.assembly.emit_init(name, *args)
        else:
            self.assembly.emit_instr(name, *args)

    def label(self, name: str, is_fun: bool = False) -> None:
        """Emit a label into the main instruction stream."""
        self.assembly.emit_label(name, is_fun)

    def new_label(self, name: str) -> str:
        """A label name that cannot collide with any other."""
        return f"_lab{next(self._label_numbers)}_{name}"

    def _emit_located(self, base: str, owner: Symbol, offset: int) -> None:
        """Emit ``base`` with the suffix for where ``owner`` lives."""
        owner_level = owner.parent_scope.nesting_level
        if owner.imported:
            self.instr(f"{base}e", offset)
        elif owner_level == 0:
            self.instr(f"{base}g", offset)
        elif owner_level == self.scope.nesting_level:
            self.instr(base, offset)
        else:
            self.instr(f"{base}n", self.scope.nesting_level - owner_level, offset)

    def load_array_ref(self, arr: Symbol) -> None:
        """Push the reference of array ``arr``."""
        self._emit_located("aload", arr, arr.offset)

    def store_array_element(self, arr: Symbol) -> None:
        """Store the value below index and reference into the array."""
        self.instr(f"{_array_prefix(arr)}storea")

    def load_array_element(self, arr: Symbol) -> None:
        """Replace index and reference on the stack with the element."""
        self.instr(f"{_array_prefix(arr)}loada")

    def push_array_dim(self, dim: Symbol) -> None:
        """Push the value of one dimension variable."""
        self._emit_located("iload", dim, dim.offset)

    def push_array_dims(self, arr: Symbol, start: int = 0) -> None:
        """Push the dimensions of ``arr`` from index ``start`` on."""
        for dim in arr.dims[start:]:
            self.push_array_dim(dim)

    def compute_array_size(self, arr: Symbol) -> None:
        """Push the total element count of ``arr``."""
        self.push_array_dims(arr, 0)
        for _ in arr.dims[1:]:
            self.instr("imul")

    def store_array_dim(self, dim: Symbol) -> None:
        """Pop the stack top into a dimension variable."""
        self._emit_located("istore", dim, dim.offset)

    def push_array_with_dims(self, arr: Symbol) -> None:
        """Push all dimensions of ``arr`` and then its reference."""
        self.push_array_dims(arr, 0)
        self.load_array_ref(arr)

    def create_array(self, arr: Symbol) -> None:
        """Allocate ``arr`` from its stored dimensions and store the reference."""
        prefix = _array_prefix(arr)
        self.compute_array_size(arr)
        self.instr(f"{prefix}newa")
        self._emit_located("astore", arr, arr.offset)

    def _hidden(self, arr: Symbol, kind: str) -> Symbol:
        name = f"_{kind}_{arr.name}"
        found = arr.parent_scope.lookup(name)
        if found is None:
            raise LookupError(f"Missing helper variable {name}")
        return found

    def init_array_with_scalar(self, arr: Symbol) -> None:
        """Fill every element of ``arr`` with the scalar on the stack top."""
        prefix = _scalar_prefix(self.last_type)
        scalar = self._hidden(arr, "scalar").offset
        counter = self._hidden(arr, "counter").offset
        size = self._hidden(arr, "size").offset
        loop_start = self.new_label("for_loop_start")
        loop_end = self.new_label("for_loop_end")

        self.instr(f"{prefix}store", scalar)

        self.instr("iloadc_0")
        self.instr("istore", counter)

        self.compute_array_size(arr)
        self.instr("istore", size)

        self.label(loop_start, False)
        self.instr("iload", counter)
        self.instr("iload", size)
        self.instr("ilt")
        self.instr("branch_f", loop_end)

        self.instr(f"{prefix}load", scalar)
        self._emit_located("iload", arr, counter)
        self._emit_located("aload", arr, arr.offset)
        self.instr(f"{prefix}storea")

        self.instr("iinc_1", counter)
        self.instr("jump", loop_start)
        self.label(loop_end, False)

    def init_array_with_arrexpr(self, arr: Symbol, count: int) -> None:
        """Store ``count`` values from the stack into ``arr``, last index first."""
        store = f"{_array_prefix(arr)}storea"
        for idx in range(count - 1, -1, -1):
            const_offset = len(self.assembly.consts)
            self.assembly.emit_const("int", str(idx))
            self.instr("iloadc", const_offset)
            self.load_array_ref(arr)
            self.instr(store)


def count_arrexpr(node: Union[ArrExpr, Sequence[object]]) -> int:
    """Number of scalar values in an array literal, including nested ones."""
    exprs = node.exprs if isinstance(node, ArrExpr) else node
    count = 0
    seen_nested = False
    for expr in exprs:
        if isinstance(expr, ArrExpr):
            count += count_arrexpr(expr)
            seen_nested = True
        else:
            count += 1
            if seen_nested:
                raise CompileError("Inconsistent initialisation value shape of array")
    return count