"""Code generation for expressions."""

from __future__ import annotations

from typing import Callable, Sequence

from .assembly import Assembly
from .ast import ArrExpr, BinOp, Bool, Cast, Float, FunCall, MonOp, Num, Var
from .emitter import Emitter
from .symbols import Symbol, SymbolTable
from .types import (
    BinOpType,
    CompileError,
    CType,
    MonOpType,
    SymbolType,
    ValueType,
    ct_to_vt,
    demote_array_type,
    float_to_str,
    is_array,
    vt_to_str,
)

_SCALAR_PREFIX = {
    ValueType.NUM: "i",
    ValueType.FLOAT: "f",
    ValueType.BOOL: "b",
}

_BINOP_SUFFIX = {
    BinOpType.ADD: "add",
    BinOpType.SUB: "sub",
    BinOpType.MUL: "mul",
    BinOpType.DIV: "div",
    BinOpType.MOD: "rem",
    BinOpType.LT: "lt",
    BinOpType.LE: "le",
    BinOpType.GT: "gt",
    BinOpType.GE: "ge",
    BinOpType.EQ: "eq",
    BinOpType.NE: "ne",
}

_COMPARISONS = {
    BinOpType.LT,
    BinOpType.LE,
    BinOpType.GT,
    BinOpType.GE,
    BinOpType.EQ,
    BinOpType.NE,
}

_NOT_FOR_BOOL = {
    BinOpType.SUB,
    BinOpType.DIV,
    BinOpType.MOD,
    BinOpType.LT,
    BinOpType.LE,
    BinOpType.GT,
    BinOpType.GE,
}

_SMALL_INT_LOADS = {-1: "iloadc_m1", 0: "iloadc_0", 1: "iloadc_1"}


def _prefix(vtype: ValueType, what: str) -> str:
    try:
        return _SCALAR_PREFIX[vtype]
    except KeyError:
        raise ValueError(f"Unexpected {what} valuetype {vt_to_str(vtype)}") from None


class ExpressionCompiler(Emitter):
    """Emits the instructions that evaluate expressions onto the stack."""

    def __init__(self, global_scope: SymbolTable, assembly: Assembly | None = None):
        super().__init__(global_scope, assembly)
        self.had_expr = False
        self._handlers: dict[type, Callable[[object], None]] = {
            Num: self._num,
            Float: self._float,
            Bool: self._bool,
            Var: self._var,
            BinOp: self._binop,
            MonOp: self._monop,
            Cast: self._cast,
            FunCall: self._funcall,
            ArrExpr: self._arrexpr,
        }

    def compile_expr(self, node: object) -> None:
        """Emit code that leaves the value of ``node`` on the stack."""
        handler = self._handlers.get(type(node))
        if handler is None:
            raise TypeError(f"Not an expression: {node!r}")
        handler(node)

    def fill_array_dims(self, arr: Symbol, exprs: Sequence[object]) -> None:
        """Evaluate the dimension expressions of ``arr`` into its dimension variables."""
        for dim, expr in zip(arr.dims, exprs, strict=True):
            self.compile_expr(expr)
            if self.last_type is not ValueType.NUM:
                raise ValueError("Array dimension did not evaluate to int")
            self.store_array_dim(dim)

    def flatten_indices(self, arr: Symbol, exprs: Sequence[object]) -> None:
        """Push the flat element index for a multi-dimensional index list."""
        dim_count = arr.dim_count
        for i, expr in enumerate(exprs):
            self.compile_expr(expr)
            if i < dim_count - 1:
                self.push_array_dims(arr, i + 1)
                for _ in range(i + 1, dim_count):
                    self.instr("imul")
            if i != 0:
                self.instr("iadd")

    # Literals

    def _num(self, node: Num) -> None:
        value = node.val
        short = _SMALL_INT_LOADS.get(value)
        if short is not None:
            self.instr(short)
        else:
            self.instr("iloadc", self._constant_index("int", str(value)))
        self.last_type = ValueType.NUM
        self.had_expr = True

    def _float(self, node: Float) -> None:
        value = node.val
        if value == 0.0:
            self.instr("floadc_0")
        elif value == 1.0:
            self.instr("floadc_1")
        else:
            self.instr("floadc", self._constant_index("float", float_to_str(value)))
        self.last_type = ValueType.FLOAT
        self.had_expr = True

    def _bool(self, node: Bool) -> None:
        self.instr("bloadc_t" if node.val else "bloadc_f")
        self.last_type = ValueType.BOOL
        self.had_expr = True

    def _constant_index(self, type_name: str, value: str) -> int:
        found = self.assembly.find_constant(value)
        if found is not None:
            return found[0]
        index = len(self.assembly.consts)
        self.assembly.emit_const(type_name, value)
        return index

    def _arrexpr(self, node: ArrExpr) -> None:
        for expr in node.exprs:
            self.compile_expr(expr)

    # Variables

    def _resolve_var(self, node: Var) -> Symbol:
        symbol = node.symbol if node.symbol is not None else self.scope.find(node.name)
        if symbol is None:
            raise CompileError(f"Could not find symbol named {node.name}")
        return symbol

    def _var(self, node: Var) -> None:
        s = self._resolve_var(node)

        if s.stype is SymbolType.ARRAYVAR:
            if not node.indices:
                self.push_array_with_dims(s)
                self.last_type = s.vtype
            else:
                self.flatten_indices(s, node.indices)
                self.load_array_ref(s)
                self.load_array_element(s)
                self.last_type = demote_array_type(s.vtype)
            self.had_expr = True
            return

        if is_array(s.vtype):
            self.push_array_with_dims(s)
            self.last_type = s.vtype
            self.had_expr = True
            return

        prefix = _prefix(s.vtype, "variable")
        current_level = self.scope.nesting_level
        var_level = s.parent_scope.nesting_level
        if var_level == 0:
            suffix = "loade" if s.imported else "loadg"
            self.instr(f"{prefix}{suffix}", s.offset)
        elif current_level == var_level:
            if s.offset <= 3:
                self.instr(f"{prefix}load_{s.offset}")
            else:
                self.instr(f"{prefix}load", s.offset)
        else:
            if current_level < var_level:
                raise ValueError(
                    f"Variable {s.name} from deeper scope {var_level} used at scope {current_level}"
                )
            self.instr(f"{prefix}loadn", current_level - var_level, s.offset)

        self.last_type = s.vtype
        self.had_expr = True

    # Operators

    def _short_circuit(self, node: BinOp, branch: str, constant: str) -> None:
        short_label = self.new_label("else")
        end_label = self.new_label("end")
        name = "and" if node.op is BinOpType.AND else "or"

        self.compile_expr(node.left)
        if self.last_type is not ValueType.BOOL:
            raise ValueError(f"Left operand of '{name}' is not boolean")
        self.instr(branch, short_label)

        self.compile_expr(node.right)
        if self.last_type is not ValueType.BOOL:
            raise ValueError(f"Right operand of '{name}' is not boolean")
        self.instr("jump", end_label)

        self.label(short_label, False)
        self.instr(constant)
        self.label(end_label, False)
        self.last_type = ValueType.BOOL

    def _binop(self, node: BinOp) -> None:
        if node.op is BinOpType.AND:
            self._short_circuit(node, "branch_f", "bloadc_f")
            return
        if node.op is BinOpType.OR:
            self._short_circuit(node, "branch_t", "bloadc_t")
            return

        self.compile_expr(node.left)
        left = self.last_type
        self.compile_expr(node.right)
        right = self.last_type
        if left is not right:
            raise ValueError(
                f"Left value and right value of types {vt_to_str(left)} and "
                f"{vt_to_str(right)} don't match"
            )

        prefix = _prefix(left, "binop")
        if left is ValueType.BOOL and node.op in _NOT_FOR_BOOL:
            raise ValueError(f"{node.op.value} operator was performed on boolean values")
        if left is ValueType.FLOAT and node.op is BinOpType.MOD:
            raise ValueError("Modulo was performed on float values")
        try:
            suffix = _BINOP_SUFFIX[node.op]
        except KeyError:
            raise ValueError(f"Unexpected binop {node.op!r}") from None

        self.instr(f"{prefix}{suffix}")
        if node.op in _COMPARISONS:
            self.last_type = ValueType.BOOL

    def _monop(self, node: MonOp) -> None:
        self.compile_expr(node.operand)
        if node.op is MonOpType.NEG:
            if self.last_type is ValueType.NUM:
                self.instr("ineg")
            elif self.last_type is ValueType.FLOAT:
                self.instr("fneg")
            else:
                raise CompileError(
                    f"Unexpected expression value {vt_to_str(self.last_type)} for monop NEG"
                )
        elif node.op is MonOpType.NOT:
            if self.last_type is not ValueType.BOOL:
                raise CompileError(
                    f"Unexpected expression value {vt_to_str(self.last_type)} for monop NOT"
                )
            self.instr("bnot")
        else:
            raise ValueError(f"Unexpected monop {node.op!r}")

    def _select(self, if_true: str, if_false: str) -> None:
        """Replace the boolean on the stack top with one of two constants."""
        else_label = self.new_label("else")
        end_label = self.new_label("end")
        self.instr("branch_f", else_label)
        self.instr(if_true)
        self.instr("jump", end_label)
        self.label(else_label, False)
        self.instr(if_false)
        self.label(end_label, False)

    def _cast(self, node: Cast) -> None:
        self.compile_expr(node.expr)
        source, target = self.last_type, node.type

        if source is ValueType.NUM and target is CType.FLOAT:
            self.instr("i2f")
        elif source is ValueType.FLOAT and target is CType.INT:
            self.instr("f2i")
        elif source is ValueType.NUM and target is CType.BOOL:
            self.instr("iloadc_0")
            self.instr("ine")
            self._select("bloadc_t", "bloadc_f")
        elif source is ValueType.BOOL and target is CType.INT:
            self._select("iloadc_1", "iloadc_0")
        elif source is ValueType.FLOAT and target is CType.BOOL:
            self.instr("floadc_0")
            self.instr("fne")
            self._select("bloadc_t", "bloadc_f")
        elif source is ValueType.BOOL and target is CType.FLOAT:
            self._select("floadc_1", "floadc_0")
        else:
            raise ValueError(f"Unexpected cast from {vt_to_str(source)} to {target!r}")

        self.last_type = ct_to_vt(target, False)

    # Calls

    def _funcall(self, node: FunCall) -> None:
        s = self.scope.find(node.name)
        if s is None:
            raise CompileError(f"Could not find symbol named {node.name}")

        parent_fun = self.scope.parent_fun
        if parent_fun is not None and parent_fun.parent_scope is not None:
            current_level = parent_fun.parent_scope.nesting_level
        else:
            current_level = 0
        fun_level = s.parent_scope.nesting_level

        if fun_level == 0:
            self.instr("isrg")
        elif fun_level == current_level + 1:
            self.instr("isrl")
        elif fun_level == current_level:
            self.instr("isr")
        else:
            if current_level < fun_level + 1:
                raise ValueError(
                    f"Calling function from scope depth {fun_level} unreachable "
                    f"by own scope depth {current_level}"
                )
            self.instr("isrn", current_level - fun_level)

        for arg in node.args:
            self.compile_expr(arg)

        if s.imported:
            found = self.assembly.find_fun_import(node.name)
            if found is None:
                raise LookupError(f"Imported function {node.name} is not in the import table")
            self.instr("jsre", found[0])
        else:
            if not s.label_name:
                raise ValueError(f"Empty label name for fun {s.name}")
            self.instr("jsr", s.param_count, s.label_name)

        self.had_expr = True
        self.last_type = s.vtype