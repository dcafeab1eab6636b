"""Code generation for declarations, statements and whole programs."""

from __future__ import annotations

import os
from typing import Callable

from .assembly import Assembly, write_assembly
from .ast import (
    ArrExpr,
    Assign,
    DoWhile,
    ExprStmt,
    For,
    FunBody,
    FunDef,
    GlobDecl,
    GlobDef,
    IfElse,
    Num,
    Program,
    Return,
    VarDecl,
    VarLet,
    While,
)
from .emitter import count_arrexpr
from .expressions import ExpressionCompiler
from .symbols import Symbol, SymbolTable
from .types import CompileError, SymbolType, ValueType, generate_array_dim_name, vt_to_str

_SCALAR_PREFIX = {
    ValueType.NUM: "i",
    ValueType.FLOAT: "f",
    ValueType.BOOL: "b",
}

_POP = {
    ValueType.NUM: "ipop",
    ValueType.FLOAT: "fpop",
    ValueType.BOOL: "bpop",
}

_RETURN = {
    ValueType.NUM: "ireturn",
    ValueType.FLOAT: "freturn",
    ValueType.BOOL: "breturn",
    ValueType.VOID: "return",
}


def _prefix(vtype: ValueType, what: str) -> str:
    try:
        return _SCALAR_PREFIX[vtype]
    except KeyError:
        raise ValueError(f"Incompatible {what} with valuetype {vt_to_str(vtype)}") from None


class CodeGenerator(ExpressionCompiler):
    """Generates the assembly for a program whose symbol tables are built."""

    def __init__(
        self,
        global_scope: SymbolTable,
        requires_init_function: bool = False,
        assembly: Assembly | None = None,
    ):
        super().__init__(global_scope, assembly)
        self.requires_init_function = requires_init_function
        self.had_return = False
        self._decl_handlers: dict[type, Callable[[object], None]] = {
            GlobDecl: self._globdecl,
            GlobDef: self._globdef,
            FunDef: self._fundef,
        }
        self._stmt_handlers: dict[type, Callable[[object], None]] = {
            Assign: self._assign,
            ExprStmt: self._exprstmt,
            Return: self._return,
            IfElse: self._ifelse,
            While: self._while,
            DoWhile: self._dowhile,
            For: self._for,
        }

    def generate(self, program: Program) -> Assembly:
        """Emit the code of ``program`` and return the filled assembly."""
        self.scope = self.global_scope
        if self.requires_init_function:
            self.assembly.emit_fun_export("__init", "void")
        for decl in program.decls:
            handler = self._decl_handlers.get(type(decl))
            if handler is None:
                raise TypeError(f"Not a declaration: {decl!r}")
            handler(decl)
        return self.assembly

    # Declarations

    def _globdecl(self, node: GlobDecl) -> None:
        s = self._find(node.name)
        if s.stype is SymbolType.ARRAYVAR:
            num = vt_to_str(ValueType.NUM)
            for i in range(s.dim_count):
                self.assembly.emit_var_import(generate_array_dim_name(node.name, i), num)
        self.assembly.emit_var_import(node.name, vt_to_str(s.vtype))

    def _globdef(self, node: GlobDef) -> None:
        s = self.scope.lookup(node.name)
        if s is None:
            raise CompileError(f"Could not find symbol named {node.name}")
        is_arr = s.stype is SymbolType.ARRAYVAR

        if is_arr:
            for _ in range(s.dim_count):
                self.assembly.emit_glob_var(vt_to_str(ValueType.NUM))
        self.assembly.emit_glob_var(vt_to_str(s.vtype))

        if node.export:
            if is_arr:
                for dim in s.dims:
                    self.assembly.emit_var_export(dim.name, dim.offset)
            self.assembly.emit_var_export(s.name, s.offset)

        if is_arr:
            self.fill_array_dims(s, node.dims)
            self.create_array(s)

        if node.init is None:
            return

        self.compile_expr(node.init)

        if is_arr:
            self._init_array(s, node.init)
            return

        self.instr(f"{_prefix(self.last_type, 'global definition')}storeg", s.offset)

    def _fundef(self, node: FunDef) -> None:
        s = self._find(node.name)
        param_types = [vt_to_str(t) for t in s.param_types[: s.param_count]]

        if s.exported:
            self.assembly.emit_fun_export(node.name, vt_to_str(s.vtype), param_types)
        elif s.imported:
            self.assembly.emit_fun_import(node.name, vt_to_str(s.vtype), param_types)

        if s.imported:
            return
        if s.scope is None:
            raise CompileError(f"Function {node.name} has no scope")

        previous = self.scope
        self.scope = s.scope
        try:
            if node.body is not None:
                self._funbody(node.body)
            self.scope.for_loop_counter = 0
        finally:
            self.scope = previous

    def _funbody(self, body: FunBody) -> None:
        for local in body.local_fundefs:
            self._fundef(local)

        self.had_return = False

        fun = self.scope.parent_fun
        if fun is None or not fun.label_name:
            raise CompileError("Function body without a labelled function")
        self.label(fun.label_name, True)

        if self.scope.localvar_offset_counter - fun.param_count > 0:
            self.instr("esr", self.scope.localvar_offset_counter)

        for decl in body.decls:
            self._vardecl(decl)
        self._stmts(body.stmts)

        if fun.vtype is ValueType.VOID and not self.had_return:
            self.instr("return")

    def _vardecl(self, node: VarDecl) -> None:
        s = self.scope.lookup(node.name)
        if s is None:
            raise CompileError(f"Could not find symbol named {node.name}")

        if s.stype is SymbolType.ARRAYVAR:
            self.fill_array_dims(s, node.dims)
            self.create_array(s)

        if node.init is None:
            return

        self.compile_expr(node.init)

        if s.stype is SymbolType.ARRAYVAR:
            self._init_array(s, node.init)
            return

        prefix = _prefix(s.vtype, "variable declaration")
        self.last_type = s.vtype
        self.instr(f"{prefix}store", s.offset)

    def _init_array(self, arr: Symbol, init: object) -> None:
        if isinstance(init, ArrExpr):
            self.init_array_with_arrexpr(arr, count_arrexpr(init))
        else:
            self.init_array_with_scalar(arr)

    # Statements

    def _stmts(self, stmts: list[object]) -> None:
        for stmt in stmts:
            handler = self._stmt_handlers.get(type(stmt))
            if handler is None:
                raise TypeError(f"Not a statement: {stmt!r}")
            handler(stmt)

    def _assign(self, node: Assign) -> None:
        self.compile_expr(node.expr)
        self._varlet(node.let)

    def _varlet(self, node: VarLet) -> None:
        s = self._find(node.name)

        if s.stype is SymbolType.ARRAYVAR:
            self.flatten_indices(s, node.indices)
            self.load_array_ref(s)
            self.store_array_element(s)
            return

        prefix = _prefix(s.vtype, "assignment")
        self.last_type = s.vtype
        current_level = self.scope.nesting_level
        var_level = s.parent_scope.nesting_level

        if var_level == 0:
            suffix = "storee" if s.imported else "storeg"
            self.instr(f"{prefix}{suffix}", s.offset)
        elif current_level == var_level:
            self.instr(f"{prefix}store", s.offset)
        else:
            if current_level < var_level:
                raise ValueError(
                    f"Assigning variable from deeper scope {var_level} at scope {current_level}"
                )
            self.instr(f"{prefix}storen", current_level - var_level, s.offset)

    def _exprstmt(self, node: ExprStmt) -> None:
        self.compile_expr(node.expr)
        if self.last_type is ValueType.VOID:
            return
        try:
            self.instr(_POP[self.last_type])
        except KeyError:
            raise ValueError(
                f"Unexpected exprstmt type {vt_to_str(self.last_type)}"
            ) from None

    def _return(self, node: Return) -> None:
        if node.expr is not None:
            self.compile_expr(node.expr)
        fun = self.scope.parent_fun
        if fun is None:
            raise CompileError("Return statement outside a function")
        try:
            self.instr(_RETURN[fun.vtype])
        except KeyError:
            raise ValueError(f"Unexpected return valuetype {vt_to_str(fun.vtype)}") from None
        self.had_return = True

    def _ifelse(self, node: IfElse) -> None:
        else_label = self.new_label("else")
        end_label = self.new_label("end")

        self.compile_expr(node.cond)
        self.instr("branch_f", else_label)
        self._stmts(node.then)
        self.instr("jump", end_label)
        self.label(else_label, False)
        self._stmts(node.else_block)
        self.label(end_label, False)

    def _while(self, node: While) -> None:
        start = self.new_label("while_loop_start")
        end = self.new_label("while_loop_end")

        self.label(start, False)
        self.compile_expr(node.cond)
        self.instr("branch_f", end)
        self._stmts(node.block)
        self.instr("jump", start)
        self.label(end, False)

    def _dowhile(self, node: DoWhile) -> None:
        start = self.new_label("while_loop_start")

        self.label(start, False)
        self._stmts(node.block)
        self.compile_expr(node.cond)
        self.instr("branch_t", start)

    def _for(self, node: For) -> None:
        adjusted_name = f"{self.scope.for_loop_counter}_{node.var}"
        loop_symbol = self.scope.lookup(adjusted_name)
        if loop_symbol is None or loop_symbol.scope is None:
            raise CompileError(f"No scope recorded for loop {adjusted_name}")
        self.scope = loop_symbol.scope

        step = node.step if node.step is not None else Num(1)

        self.compile_expr(node.start_expr)
        self._require_int("loop start expression")
        loop_offset = self._loop_symbol(node.var).offset
        self.instr("istore", loop_offset)

        self.compile_expr(node.stop)
        self._require_int("loop stop condition")
        cond_offset = self._loop_symbol("_cond").offset
        self.instr("istore", cond_offset)

        self.compile_expr(step)
        self._require_int("loop step expression")
        step_offset = self._loop_symbol("_step").offset
        self.instr("istore", step_offset)

        loop_start = self.new_label("for_loop_start")
        positive = self.new_label("positive_step_size")
        negative = self.new_label("negative_step_size")
        common = self.new_label("common_cond_check")
        loop_end = self.new_label("for_loop_end")

        self.label(loop_start, False)
        self.instr("iload", step_offset)
        self.instr("iloadc_0")
        self.instr("ige")
        self.instr("branch_t", positive)
        self.instr("jump", negative)

        self.label(positive, False)
        self.instr("iload", loop_offset)
        self.instr("iload", cond_offset)
        self.instr("ilt")
        self.instr("jump", common)

        self.label(negative, False)
        self.instr("iload", loop_offset)
        self.instr("iload", cond_offset)
        self.instr("igt")

        self.label(common, False)
        self.instr("branch_f", loop_end)

        self._stmts(node.block)

        self.compile_expr(step)
        self.instr("iload", loop_offset)
        self.instr("iadd")
        self.instr("istore", loop_offset)

        self.instr("jump", loop_start)
        self.label(loop_end, False)

        self.scope.for_loop_counter = 0
        self.scope = self.scope.parent_scope
        self.scope.for_loop_counter += 1

    # Helpers

    def _find(self, name: str) -> Symbol:
        s = self.scope.find(name)
        if s is None:
            raise CompileError(f"Could not find symbol named {name}")
        return s

    def _loop_symbol(self, name: str) -> Symbol:
        s = self.scope.lookup(name)
        if s is None:
            raise CompileError(f"Missing loop variable {name}")
        return s

    def _require_int(self, what: str) -> None:
        if self.last_type is not ValueType.NUM:
            raise ValueError(f"Got a non-integer value for {what}")


def compile_program(
    program: Program, global_scope: SymbolTable, requires_init_function: bool = False
) -> Assembly:
    """Generate the assembly of ``program``."""
    return CodeGenerator(global_scope, requires_init_function).generate(program)


def write_program(
    program: Program,
    global_scope: SymbolTable,
    requires_init_function: bool,
    output_file: str | os.PathLike[str],
) -> None:
    """Generate the assembly of ``program`` and write it to ``output_file``."""
    assembly = compile_program(program, global_scope, requires_init_function)
    with open(output_file, "w", encoding="utf-8") as stream:
        write_assembly(stream, assembly)